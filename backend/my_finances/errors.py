"""Error taxonomy shared by the store, the services and the HTTP layer.

Every ``ApiError`` maps to one HTTP status and one machine readable code;
the exception handlers in ``main`` turn them into the JSON error envelope.
"""

from typing import Optional


class ConfigurationError(RuntimeError):
    """Raised while building the application when configuration is unusable."""


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, details: Optional[list[dict[str, str]]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class AuthenticationError(ApiError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"
    default_message = "Not authorized."


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request payload."


class AuthorizationError(ValidationError):
    """A referenced parent row does not exist or belongs to someone else."""

    code = "INVALID_REFERENCE"
    default_message = "Referenced row not found or not yours."


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found."


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflicts with existing data."


class StoreError(ApiError):
    code = "STORE_ERROR"
    default_message = "Server error."
