import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging
from .errors import ApiError, AuthenticationError
from .persistence import Persistence
from .resources import RESOURCES, Resource
from .schemas import (
    ApiErrorDetail,
    ApiErrorPayload,
    ApiErrorResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    UserUpdate,
)
from .store import Store
from .tokens import TokenService

logger = logging.getLogger(__name__)


def build_error_response(status_code: int, code: str, message: str, details: Optional[list[ApiErrorDetail]] = None) -> JSONResponse:
    payload = ApiErrorResponse(error=ApiErrorPayload(code=code, message=message, details=details or []))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    details = [ApiErrorDetail(**item) for item in exc.details]
    return build_error_response(exc.status_code, exc.code, exc.message, details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details: list[ApiErrorDetail] = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err.get("loc", []) if item != "body")
        details.append(ApiErrorDetail(field=loc or "body", message=err.get("msg", "validation error")))
    return build_error_response(status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Invalid request payload.", details)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return build_error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Something went wrong.")


def get_persistence(request: Request) -> Persistence:
    return request.app.state.persistence


def current_user_id(request: Request, authorization: Optional[str] = Header(default=None)) -> int:
    user_id = request.app.state.tokens.verify(authorization)
    if user_id is None:
        raise AuthenticationError()
    return user_id


def build_resource_router(resource: Resource) -> APIRouter:
    """List/get/create/update/delete routes for one ownership-scoped resource."""
    router = APIRouter(prefix=resource.path, tags=[resource.name])
    create_model = resource.create_model
    update_model = resource.update_model
    response_model = resource.response_model

    @router.get("", response_model=list[response_model])
    def list_rows(
        user_id: int = Depends(current_user_id),
        persistence: Persistence = Depends(get_persistence),
    ) -> list[dict[str, Any]]:
        return persistence.list_rows(resource, user_id)

    @router.get("/{row_id}", response_model=response_model)
    def get_row(
        row_id: int,
        user_id: int = Depends(current_user_id),
        persistence: Persistence = Depends(get_persistence),
    ) -> dict[str, Any]:
        return persistence.get_row(resource, user_id, row_id)

    @router.post("", response_model=response_model, status_code=201)
    def create_row(
        payload: create_model,
        user_id: int = Depends(current_user_id),
        persistence: Persistence = Depends(get_persistence),
    ) -> dict[str, Any]:
        return persistence.create_row(resource, user_id, payload)

    @router.put("/{row_id}", response_model=response_model)
    def update_row(
        row_id: int,
        payload: update_model,
        user_id: int = Depends(current_user_id),
        persistence: Persistence = Depends(get_persistence),
    ) -> dict[str, Any]:
        return persistence.update_row(resource, user_id, row_id, payload)

    @router.delete("/{row_id}", status_code=204)
    def delete_row(
        row_id: int,
        user_id: int = Depends(current_user_id),
        persistence: Persistence = Depends(get_persistence),
    ) -> Response:
        persistence.delete_row(resource, user_id, row_id)
        return Response(status_code=204)

    return router


auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/register", response_model=UserResponse, status_code=201)
def auth_register(payload: RegisterRequest, persistence: Persistence = Depends(get_persistence)) -> dict[str, Any]:
    return persistence.register_user(payload.email, payload.password)


@auth_router.post("/login", response_model=TokenResponse)
def auth_login(payload: LoginRequest, request: Request, persistence: Persistence = Depends(get_persistence)) -> TokenResponse:
    user_id = persistence.authenticate_user(payload.email, payload.password)
    return TokenResponse(token=request.app.state.tokens.issue(user_id))


users_router = APIRouter(prefix="/api/users", tags=["users"])


@users_router.get("", response_model=list[UserResponse])
def list_users(
    user_id: int = Depends(current_user_id),
    persistence: Persistence = Depends(get_persistence),
) -> list[dict[str, Any]]:
    return persistence.list_users(user_id)


@users_router.get("/{row_id}", response_model=UserResponse)
def get_user(
    row_id: int,
    user_id: int = Depends(current_user_id),
    persistence: Persistence = Depends(get_persistence),
) -> dict[str, Any]:
    return persistence.get_user(user_id, row_id)


@users_router.put("/{row_id}", response_model=UserResponse)
def update_user(
    row_id: int,
    payload: UserUpdate,
    user_id: int = Depends(current_user_id),
    persistence: Persistence = Depends(get_persistence),
) -> dict[str, Any]:
    return persistence.update_user(user_id, row_id, payload)


@users_router.delete("/{row_id}", status_code=204)
def delete_user(
    row_id: int,
    user_id: int = Depends(current_user_id),
    persistence: Persistence = Depends(get_persistence),
) -> Response:
    persistence.delete_user(user_id, row_id)
    return Response(status_code=204)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    store = Store(settings.database_url)
    store.create_schema()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store.dispose()

    app = FastAPI(
        title="My-finances API",
        version="0.1.0",
        description="Accounts, categories, funds and monthly salary records with per-user ownership.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.tokens = TokenService(settings.jwt_secret, settings.token_ttl_seconds)
    app.state.persistence = Persistence(store, settings.bcrypt_rounds)

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth_router)
    app.include_router(users_router)
    for resource in RESOURCES:
        app.include_router(build_resource_router(resource))
    return app


app = create_app()
