from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from .errors import ValidationError
from .store import utcnow


class NothingToUpdate(ValidationError):
    default_message = "No fields to update."


@dataclass
class PartialUpdate:
    """Column values for an UPDATE statement, always stamped with ``updated_at``."""

    values: dict[str, Any] = field(default_factory=dict)

    @property
    def changed_columns(self) -> list[str]:
        return [name for name in self.values if name != "updated_at"]


def present_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is ``None``.

    A field counts as absent only when it is missing or null; ``0`` and ``""``
    are real values.
    """
    return {name: value for name, value in payload.items() if value is not None}


def build_partial_update(
    changes: Mapping[str, Any],
    columns: Mapping[str, str],
    now: Optional[datetime] = None,
) -> PartialUpdate:
    """Translate API field changes into column assignments.

    ``columns`` maps JSON field names to table columns; unknown fields are
    ignored. Raises ``NothingToUpdate`` when no recognized field is present.
    """
    values = {columns[name]: value for name, value in present_fields(changes).items() if name in columns}
    if not values:
        raise NothingToUpdate()
    values["updated_at"] = now or utcnow()
    return PartialUpdate(values=values)
