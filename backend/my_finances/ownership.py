from typing import Any, Mapping

from sqlalchemy import Table, and_, select
from sqlalchemy.sql.elements import ColumnElement

from .errors import AuthorizationError
from .resources import Resource
from .store import Store


class OwnershipResolver:
    """Answers "does this row belong to the caller?" for every resource.

    Rows carrying ``user_id`` are checked directly. Rows without one are
    owned through their parent references, and every parent must resolve to
    the caller.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    def owns_direct(self, user_id: int, table: Table, row_id: int) -> bool:
        stmt = select(table.c.id).where(table.c.id == row_id, table.c.user_id == user_id).limit(1)
        return self.store.fetch_one(stmt) is not None

    def owns_transitive(self, user_id: int, parent_table: Table, parent_id: int) -> bool:
        # Every parent table carries user_id, so this is one hop.
        return self.owns_direct(user_id, parent_table, parent_id)

    def owned_by(self, resource: Resource, user_id: int) -> ColumnElement[bool]:
        table = resource.table
        if resource.owner_column:
            return table.c[resource.owner_column] == user_id
        checks = []
        for field_name, parent in resource.references.items():
            fk = table.c[resource.column_of(field_name)]
            owner = select(parent.c.user_id).where(parent.c.id == fk).scalar_subquery()
            checks.append(owner == user_id)
        return and_(*checks)

    def owns(self, resource: Resource, user_id: int, row_id: int) -> bool:
        table = resource.table
        stmt = select(table.c.id).where(table.c.id == row_id, self.owned_by(resource, user_id)).limit(1)
        return self.store.fetch_one(stmt) is not None

    def check_references(self, resource: Resource, user_id: int, values: Mapping[str, Any]) -> None:
        """Raise ``AuthorizationError`` for the first supplied reference the caller does not own."""
        for field_name, parent in resource.references.items():
            parent_id = values.get(field_name)
            if parent_id is None:
                continue
            if not self.owns_transitive(user_id, parent, parent_id):
                raise AuthorizationError(f"{field_name} not found or not yours.")
