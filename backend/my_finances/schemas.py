from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .store import MAX_INT

# bcrypt only looks at the first 72 bytes of a password.
PASSWORD_MAX_BYTES = 72


class ApiErrorDetail(BaseModel):
    field: str
    message: str


class ApiErrorPayload(BaseModel):
    code: str
    message: str
    details: list[ApiErrorDetail] = Field(default_factory=list)


class ApiErrorResponse(BaseModel):
    error: ApiErrorPayload


def _normalize_isin(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return value.strip().upper()


def _check_password_length(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class RegisterRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        return _check_password_length(value)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        return _check_password_length(value)


class TokenResponse(BaseModel):
    token: str


class UserUpdate(BaseModel):
    email: Optional[str] = Field(default=None, min_length=1, max_length=320)
    password: Optional[str] = Field(default=None, min_length=1, max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_length(value)


class UserResponse(BaseModel):
    id: int
    email: str
    createdAt: datetime
    updatedAt: datetime


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: str = Field(min_length=1, max_length=100)


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[str] = Field(default=None, min_length=1, max_length=100)


class AccountResponse(BaseModel):
    id: int
    userId: int
    name: str
    type: str
    createdAt: datetime
    updatedAt: datetime


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class CategoryResponse(BaseModel):
    id: int
    userId: int
    name: str
    createdAt: datetime
    updatedAt: datetime


class FundCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    isin: str = Field(min_length=1, max_length=32)
    categoryType: str = Field(min_length=1, max_length=100)

    @field_validator("isin")
    @classmethod
    def normalize_isin(cls, value: str) -> str:
        return _normalize_isin(value)


class FundUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    isin: Optional[str] = Field(default=None, min_length=1, max_length=32)
    categoryType: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("isin")
    @classmethod
    def normalize_isin(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_isin(value)


class FundResponse(BaseModel):
    id: int
    userId: int
    name: str
    isin: str
    categoryType: str
    createdAt: datetime
    updatedAt: datetime


class YearCreate(BaseModel):
    yearNumber: int = Field(gt=0, le=MAX_INT)


class YearUpdate(BaseModel):
    yearNumber: Optional[int] = Field(default=None, gt=0, le=MAX_INT)


class YearResponse(BaseModel):
    id: int
    userId: int
    yearNumber: int
    createdAt: datetime
    updatedAt: datetime


class MonthlyRecordCreate(BaseModel):
    yearId: int = Field(gt=0, le=MAX_INT)
    month: int = Field(ge=1, le=12)
    grossSalary: Optional[float] = Field(default=None, allow_inf_nan=False)
    netSalary: Optional[float] = Field(default=None, allow_inf_nan=False)


class MonthlyRecordUpdate(BaseModel):
    yearId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    grossSalary: Optional[float] = Field(default=None, allow_inf_nan=False)
    netSalary: Optional[float] = Field(default=None, allow_inf_nan=False)


class MonthlyRecordResponse(BaseModel):
    id: int
    userId: int
    yearId: int
    month: int
    grossSalary: float
    netSalary: float
    createdAt: datetime
    updatedAt: datetime


class MonthlyBalanceCreate(BaseModel):
    monthlyRecordId: int = Field(gt=0, le=MAX_INT)
    accountId: int = Field(gt=0, le=MAX_INT)
    balance: Optional[float] = Field(default=None, allow_inf_nan=False)


class MonthlyBalanceUpdate(BaseModel):
    monthlyRecordId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    accountId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    balance: Optional[float] = Field(default=None, allow_inf_nan=False)


class MonthlyBalanceResponse(BaseModel):
    id: int
    monthlyRecordId: int
    accountId: int
    balance: float
    createdAt: datetime
    updatedAt: datetime


class CategoryAllocationCreate(BaseModel):
    monthlyRecordId: int = Field(gt=0, le=MAX_INT)
    categoryId: int = Field(gt=0, le=MAX_INT)
    percentageOfNet: Optional[float] = Field(default=None, allow_inf_nan=False)


class CategoryAllocationUpdate(BaseModel):
    monthlyRecordId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    categoryId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    percentageOfNet: Optional[float] = Field(default=None, allow_inf_nan=False)


class CategoryAllocationResponse(BaseModel):
    id: int
    monthlyRecordId: int
    categoryId: int
    percentageOfNet: float
    createdAt: datetime
    updatedAt: datetime


class FundContributionCreate(BaseModel):
    monthlyRecordId: int = Field(gt=0, le=MAX_INT)
    fundId: int = Field(gt=0, le=MAX_INT)
    percentageOfInvestment: Optional[float] = Field(default=None, allow_inf_nan=False)


class FundContributionUpdate(BaseModel):
    monthlyRecordId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    fundId: Optional[int] = Field(default=None, gt=0, le=MAX_INT)
    percentageOfInvestment: Optional[float] = Field(default=None, allow_inf_nan=False)


class FundContributionResponse(BaseModel):
    id: int
    monthlyRecordId: int
    fundId: int
    percentageOfInvestment: float
    createdAt: datetime
    updatedAt: datetime
