import logging
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import delete, func, insert, select, update

from .auth_utils import DEFAULT_ROUNDS, hash_password, verify_password
from .errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from .ownership import OwnershipResolver
from .resources import Resource
from .store import MAX_INT, Store, as_utc, users, utcnow
from .updates import build_partial_update, present_fields

logger = logging.getLogger(__name__)

USER_FIELDS = {"email": "email", "password": "password_hash"}


def _user_body(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "email": row["email"],
        "createdAt": as_utc(row["created_at"]),
        "updatedAt": as_utc(row["updated_at"]),
    }


def _storable_id(row_id: int) -> bool:
    return 0 < row_id <= MAX_INT


class Persistence:
    """Ownership-scoped CRUD over the relational store.

    Every single-row operation first asks the ``OwnershipResolver`` whether
    the caller owns the row and answers "not found" otherwise, so rows of
    other users are indistinguishable from missing ones.
    """

    def __init__(self, store: Store, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.ownership = OwnershipResolver(store)
        self.bcrypt_rounds = bcrypt_rounds

    def _require_owned(self, resource: Resource, user_id: int, row_id: int) -> None:
        if not _storable_id(row_id) or not self.ownership.owns(resource, user_id, row_id):
            raise NotFoundError(f"{resource.label} not found: {row_id}")

    def list_rows(self, resource: Resource, user_id: int) -> list[dict[str, Any]]:
        table = resource.table
        stmt = select(table).where(self.ownership.owned_by(resource, user_id)).order_by(table.c.id)
        return [resource.to_response(row) for row in self.store.fetch_all(stmt)]

    def get_row(self, resource: Resource, user_id: int, row_id: int) -> dict[str, Any]:
        if not _storable_id(row_id):
            raise NotFoundError(f"{resource.label} not found: {row_id}")
        table = resource.table
        stmt = select(table).where(table.c.id == row_id, self.ownership.owned_by(resource, user_id)).limit(1)
        row = self.store.fetch_one(stmt)
        if row is None:
            raise NotFoundError(f"{resource.label} not found: {row_id}")
        return resource.to_response(row)

    def create_row(self, resource: Resource, user_id: int, payload: BaseModel) -> dict[str, Any]:
        supplied = payload.model_dump()
        self.ownership.check_references(resource, user_id, supplied)
        now = utcnow()
        values: dict[str, Any] = {"created_at": now, "updated_at": now}
        if resource.owner_column:
            values[resource.owner_column] = user_id
        for name, column in resource.fields.items():
            value = supplied.get(name)
            values[column] = resource.defaults.get(name) if value is None else value
        table = resource.table
        row = self.store.fetch_one(insert(table).values(**values).returning(*table.c))
        logger.debug("created %s %s for user %s", resource.label, row["id"], user_id)
        return resource.to_response(row)

    def update_row(self, resource: Resource, user_id: int, row_id: int, payload: BaseModel) -> dict[str, Any]:
        self._require_owned(resource, user_id, row_id)
        changes = present_fields(payload.model_dump(exclude_unset=True))
        self.ownership.check_references(resource, user_id, changes)
        update_values = build_partial_update(changes, resource.fields)
        table = resource.table
        row = self.store.fetch_one(
            update(table).where(table.c.id == row_id).values(**update_values.values).returning(*table.c)
        )
        if row is None:
            # Deleted between the ownership check and the update.
            raise NotFoundError(f"{resource.label} not found: {row_id}")
        logger.debug("updated %s %s: %s", resource.label, row_id, ", ".join(update_values.changed_columns))
        return resource.to_response(row)

    def delete_row(self, resource: Resource, user_id: int, row_id: int) -> None:
        self._require_owned(resource, user_id, row_id)
        table = resource.table
        self.store.execute(delete(table).where(table.c.id == row_id))
        logger.debug("deleted %s %s for user %s", resource.label, row_id, user_id)

    def _find_user_by_email(self, email: str, exclude_id: Optional[int] = None) -> Optional[dict[str, Any]]:
        stmt = select(users).where(func.lower(users.c.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(users.c.id != exclude_id)
        return self.store.fetch_one(stmt.limit(1))

    def register_user(self, email: str, password: str) -> dict[str, Any]:
        if self._find_user_by_email(email):
            raise ConflictError("Email already registered.")
        now = utcnow()
        row = self.store.fetch_one(
            insert(users)
            .values(
                email=email,
                password_hash=hash_password(password, self.bcrypt_rounds),
                created_at=now,
                updated_at=now,
            )
            .returning(*users.c)
        )
        logger.info("registered user %s", row["id"])
        return _user_body(row)

    def authenticate_user(self, email: str, password: str) -> int:
        row = self._find_user_by_email(email)
        if row is None:
            logger.info("login failed for %s: unknown email", email)
            raise AuthenticationError("Invalid credentials.")
        stored_hash = row.get("password_hash")
        if not isinstance(stored_hash, str) or not stored_hash:
            raise ValidationError("Invalid user password.")
        if not verify_password(password, stored_hash):
            logger.info("login failed for %s: wrong password", email)
            raise AuthenticationError("Invalid credentials.")
        logger.info("user %s logged in", row["id"])
        return row["id"]

    def user_exists(self, user_id: int) -> bool:
        return self.store.fetch_one(select(users.c.id).where(users.c.id == user_id).limit(1)) is not None

    def list_users(self, user_id: int) -> list[dict[str, Any]]:
        return [_user_body(row) for row in self.store.fetch_all(select(users).where(users.c.id == user_id))]

    def get_user(self, user_id: int, row_id: int) -> dict[str, Any]:
        row = None
        if row_id == user_id and _storable_id(row_id):
            row = self.store.fetch_one(select(users).where(users.c.id == row_id).limit(1))
        if row is None:
            raise NotFoundError(f"user not found: {row_id}")
        return _user_body(row)

    def update_user(self, user_id: int, row_id: int, payload: BaseModel) -> dict[str, Any]:
        if row_id != user_id or not _storable_id(row_id) or not self.user_exists(row_id):
            raise NotFoundError(f"user not found: {row_id}")
        changes = present_fields(payload.model_dump(exclude_unset=True))
        if "email" in changes and self._find_user_by_email(changes["email"], exclude_id=row_id):
            raise ConflictError("Email already registered.")
        if "password" in changes:
            changes["password"] = hash_password(changes["password"], self.bcrypt_rounds)
        update_values = build_partial_update(changes, USER_FIELDS)
        row = self.store.fetch_one(
            update(users).where(users.c.id == row_id).values(**update_values.values).returning(*users.c)
        )
        if row is None:
            raise NotFoundError(f"user not found: {row_id}")
        return _user_body(row)

    def delete_user(self, user_id: int, row_id: int) -> None:
        if row_id != user_id or not _storable_id(row_id) or not self.user_exists(row_id):
            raise NotFoundError(f"user not found: {row_id}")
        self.store.execute(delete(users).where(users.c.id == row_id))
        logger.info("deleted user %s", row_id)
