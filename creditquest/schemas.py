from datetime import date
from dateutil.parser import isoparse
from pydantic import BaseModel, Field, field_validator
from typing import Optional


def _validate_date(v: str) -> str:
    """Validate date string is a real date, not just matching a regex."""
    try:
        date.fromisoformat(v)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid date: {v!r} — expected YYYY-MM-DD")
    return v


def _validate_timestamp(v: str) -> str:
    try:
        isoparse(v)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid timestamp: {v!r} — expected ISO 8601")
    return v


class LoanProfile(BaseModel):
    principal: float = Field(gt=0, le=100_000_000)
    interest_rate: float = Field(ge=0, le=100, alias="interestRate")
    monthly_payment: float = Field(ge=0.01, le=100_000_000, alias="monthlyPayment")
    start_date: str = Field(alias="startDate")

    model_config = {"populate_by_name": True}

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, v):
        return _validate_date(v)


class ExtraPayment(BaseModel):
    id: str = Field(min_length=1, max_length=255)
    date: str
    amount: float = Field(ge=0.01, le=100_000_000)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _validate_timestamp(v)


class ExtraPaymentCreate(BaseModel):
    amount: float = Field(ge=0.01, le=100_000_000)
    date: Optional[str] = None  # defaults to now

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        if v is None:
            return v
        return _validate_timestamp(v)


class DataDocument(BaseModel):
    """The stored document. Every key is optional; an empty object means nothing is set up."""

    profile: Optional[LoanProfile] = None
    checked_ids: Optional[list[str]] = Field(default=None, alias="checkedIds")
    extra_payments: Optional[list[ExtraPayment]] = Field(default=None, alias="extraPayments")

    model_config = {"populate_by_name": True}

    @field_validator("extra_payments")
    @classmethod
    def validate_unique_ids(cls, v):
        if v is None:
            return v
        ids = [p.id for p in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Extra payment ids must be unique")
        return v

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PaymentEventResponse(BaseModel):
    id: str
    number: int
    date: str
    kind: str
    payment: float
    interest_part: float
    principal_part: float
    remaining_after: float
    year: int
    month: int
    is_checked: bool
    is_archived: bool


class ScheduleSummary(BaseModel):
    total_regular_payments: int
    total_extra_payments: int
    total_interest: float
    total_paid: float
    payoff_date: str
    remaining_balance: float
    archive_count: int
    active_count: int
    warning: Optional[str]


class ScheduleResponse(BaseModel):
    summary: ScheduleSummary
    events: list[PaymentEventResponse]
    unapplied_extra_payments: list[ExtraPayment]


class StatsResponse(BaseModel):
    paid_principal: float
    remaining_principal: float
    progress_percent: float
    projected_end_date: str
    next_milestone: int


class UtilizationResponse(BaseModel):
    year: int
    paid: float
    max: float
    percentage: float
    is_maxed: bool
