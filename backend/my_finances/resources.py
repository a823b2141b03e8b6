"""Per-entity descriptors driving the generic CRUD handlers."""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import Table

from . import schemas, store


@dataclass(frozen=True)
class Resource:
    name: str
    table: Table
    # JSON field name -> column name, for writable fields only.
    fields: dict[str, str]
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    response_model: type[BaseModel]
    # Column holding the owning user id, when the row carries one.
    owner_column: Optional[str] = "user_id"
    # JSON field name -> parent table whose ``user_id`` must be the caller.
    references: dict[str, Table] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return f"/api/{self.name}"

    @property
    def label(self) -> str:
        return self.name.replace("-", " ")

    def column_of(self, field_name: str) -> str:
        return self.fields[field_name]

    def to_response(self, row: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {"id": row["id"]}
        if self.owner_column:
            body["userId"] = row[self.owner_column]
        for name, column in self.fields.items():
            body[name] = row[column]
        body["createdAt"] = store.as_utc(row["created_at"])
        body["updatedAt"] = store.as_utc(row["updated_at"])
        return body


ACCOUNTS = Resource(
    name="accounts",
    table=store.accounts,
    fields={"name": "name", "type": "type"},
    create_model=schemas.AccountCreate,
    update_model=schemas.AccountUpdate,
    response_model=schemas.AccountResponse,
)

CATEGORIES = Resource(
    name="categories",
    table=store.categories,
    fields={"name": "name"},
    create_model=schemas.CategoryCreate,
    update_model=schemas.CategoryUpdate,
    response_model=schemas.CategoryResponse,
)

FUNDS = Resource(
    name="funds",
    table=store.funds,
    fields={"name": "name", "isin": "isin", "categoryType": "category_type"},
    create_model=schemas.FundCreate,
    update_model=schemas.FundUpdate,
    response_model=schemas.FundResponse,
)

YEARS = Resource(
    name="years",
    table=store.years,
    fields={"yearNumber": "year_number"},
    create_model=schemas.YearCreate,
    update_model=schemas.YearUpdate,
    response_model=schemas.YearResponse,
)

MONTHLY_RECORDS = Resource(
    name="monthly-records",
    table=store.monthly_records,
    fields={"yearId": "year_id", "month": "month", "grossSalary": "gross_salary", "netSalary": "net_salary"},
    create_model=schemas.MonthlyRecordCreate,
    update_model=schemas.MonthlyRecordUpdate,
    response_model=schemas.MonthlyRecordResponse,
    references={"yearId": store.years},
    defaults={"grossSalary": 0, "netSalary": 0},
)

MONTHLY_BALANCES = Resource(
    name="monthly-balances",
    table=store.monthly_balances,
    fields={"monthlyRecordId": "monthly_record_id", "accountId": "account_id", "balance": "balance"},
    create_model=schemas.MonthlyBalanceCreate,
    update_model=schemas.MonthlyBalanceUpdate,
    response_model=schemas.MonthlyBalanceResponse,
    owner_column=None,
    references={"monthlyRecordId": store.monthly_records, "accountId": store.accounts},
    defaults={"balance": 0},
)

CATEGORY_ALLOCATIONS = Resource(
    name="categories-allocations",
    table=store.category_allocations,
    fields={"monthlyRecordId": "monthly_record_id", "categoryId": "category_id", "percentageOfNet": "percentage_of_net"},
    create_model=schemas.CategoryAllocationCreate,
    update_model=schemas.CategoryAllocationUpdate,
    response_model=schemas.CategoryAllocationResponse,
    owner_column=None,
    references={"monthlyRecordId": store.monthly_records, "categoryId": store.categories},
    defaults={"percentageOfNet": 0},
)

FUND_CONTRIBUTIONS = Resource(
    name="fund-contributions",
    table=store.fund_contributions,
    fields={"monthlyRecordId": "monthly_record_id", "fundId": "fund_id", "percentageOfInvestment": "percentage_of_investment"},
    create_model=schemas.FundContributionCreate,
    update_model=schemas.FundContributionUpdate,
    response_model=schemas.FundContributionResponse,
    owner_column=None,
    references={"monthlyRecordId": store.monthly_records, "fundId": store.funds},
    defaults={"percentageOfInvestment": 0},
)

RESOURCES: tuple[Resource, ...] = (
    ACCOUNTS,
    CATEGORIES,
    FUNDS,
    YEARS,
    MONTHLY_RECORDS,
    MONTHLY_BALANCES,
    CATEGORY_ALLOCATIONS,
    FUND_CONTRIBUTIONS,
)
