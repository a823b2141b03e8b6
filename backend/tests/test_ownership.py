import pytest
from sqlalchemy import insert

from my_finances.errors import AuthorizationError
from my_finances.ownership import OwnershipResolver
from my_finances.resources import MONTHLY_BALANCES, YEARS
from my_finances.store import Store, accounts, monthly_balances, monthly_records, users, utcnow, years


def _seed() -> tuple[Store, dict[str, int]]:
    store = Store("sqlite://")
    store.create_schema()
    now = utcnow()
    stamps = {"created_at": now, "updated_at": now}
    ids: dict[str, int] = {}

    def add(table, key: str, **values) -> None:
        ids[key] = store.fetch_one(insert(table).values(**values, **stamps).returning(table.c.id))["id"]

    add(users, "alice", email="alice@x.com", password_hash="x")
    add(users, "bob", email="bob@x.com", password_hash="x")
    add(years, "alice_year", user_id=ids["alice"], year_number=2024)
    add(monthly_records, "alice_record", user_id=ids["alice"], year_id=ids["alice_year"], month=1, gross_salary=0, net_salary=0)
    add(accounts, "alice_account", user_id=ids["alice"], name="Checking", type="bank")
    add(accounts, "bob_account", user_id=ids["bob"], name="Savings", type="bank")
    add(monthly_balances, "own_balance", monthly_record_id=ids["alice_record"], account_id=ids["alice_account"], balance=10)
    # A row whose two parents belong to different users.
    add(monthly_balances, "mixed_balance", monthly_record_id=ids["alice_record"], account_id=ids["bob_account"], balance=20)
    return store, ids


def test_direct_ownership() -> None:
    store, ids = _seed()
    resolver = OwnershipResolver(store)
    assert resolver.owns_direct(ids["alice"], years, ids["alice_year"])
    assert not resolver.owns_direct(ids["bob"], years, ids["alice_year"])
    assert not resolver.owns_direct(ids["alice"], years, 9999)
    assert resolver.owns(YEARS, ids["alice"], ids["alice_year"])


def test_transitive_ownership_requires_every_parent() -> None:
    store, ids = _seed()
    resolver = OwnershipResolver(store)
    assert resolver.owns_transitive(ids["alice"], monthly_records, ids["alice_record"])
    assert resolver.owns(MONTHLY_BALANCES, ids["alice"], ids["own_balance"])
    assert not resolver.owns(MONTHLY_BALANCES, ids["alice"], ids["mixed_balance"])
    assert not resolver.owns(MONTHLY_BALANCES, ids["bob"], ids["mixed_balance"])
    assert not resolver.owns(MONTHLY_BALANCES, ids["bob"], ids["own_balance"])


def test_check_references_reports_foreign_parent() -> None:
    store, ids = _seed()
    resolver = OwnershipResolver(store)
    resolver.check_references(
        MONTHLY_BALANCES, ids["alice"], {"monthlyRecordId": ids["alice_record"], "accountId": ids["alice_account"]}
    )
    with pytest.raises(AuthorizationError, match="accountId"):
        resolver.check_references(MONTHLY_BALANCES, ids["alice"], {"accountId": ids["bob_account"]})
