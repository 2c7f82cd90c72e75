"""Pure-function loan progress calculator. No DB, no async."""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

MAX_ITERATIONS = 1200
ZERO_THRESHOLD = 0.01
SPECIAL_REPAYMENT_CAP = 0.05
MILESTONE_STEP = 10

REGULAR = "regular"
EXTRA = "extra"

_LEGACY_EVENT_ID = re.compile(r"^m-(\d{4})-(\d|1[01])$")


class InsufficientPaymentError(ValueError):
    """Monthly payment does not cover the first month's interest."""


@dataclass
class PaymentEvent:
    id: str
    number: int
    date: date
    kind: str
    payment: float
    interest_part: float
    principal_part: float
    remaining_after: float
    year: int
    month: int


@dataclass
class LoanStats:
    paid_principal: float
    remaining_principal: float
    progress_percent: float
    projected_end_date: date


@dataclass
class YearlyUtilization:
    year: int
    paid: float
    max: float
    percentage: float
    is_maxed: bool


def to_date(value: date | datetime | str) -> date:
    """Calendar date of a date, datetime or ISO 8601 string."""
    if isinstance(value, str):
        value = isoparse(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def regular_event_id(payment_date: date) -> str:
    return f"m-{payment_date.year}-{payment_date.month:02d}"


def convert_legacy_event_id(event_id: str) -> str:
    """Map an id with a 0-based, unpadded month (m-2024-0 is January) to m-YYYY-MM.

    Ids that do not have that shape are returned unchanged.
    """
    match = _LEGACY_EVENT_ID.match(event_id)
    if not match:
        return event_id
    year, month = int(match.group(1)), int(match.group(2))
    return f"m-{year}-{month + 1:02d}"


def first_period_interest(principal: float, annual_rate_percent: float) -> float:
    return principal * annual_rate_percent / 100 / 12


def validate_profile(principal: float, annual_rate_percent: float, monthly_payment: float) -> None:
    """Reject a monthly payment that can never pay the loan off.

    Must be called before generate_schedule; the generator itself accepts
    any input and relies on its iteration ceiling instead.
    """
    # Compare in cents, as the schedule does
    interest = round(first_period_interest(principal, annual_rate_percent), 2)
    if round(monthly_payment, 2) <= interest:
        raise InsufficientPaymentError(
            f"Monthly payment too low: at least {interest:.2f} is needed to cover interest."
        )


def generate_schedule(
    principal: float,
    annual_rate_percent: float,
    monthly_payment: float,
    start_date: date | str,
    extra_payments: list[dict] | None = None,
) -> list[PaymentEvent]:
    """Generate the monthly amortization schedule with extra payments merged in.

    Args:
        principal: Loan amount (positive).
        annual_rate_percent: Annual rate in percent (e.g., 5.0).
        monthly_payment: Fixed installment paid every month.
        start_date: Date of the first regular payment.
        extra_payments: List of {"id": ..., "date": ..., "amount": ...}.
            Applied fully to principal in the month they fall in, after
            that month's regular payment, so the next month's interest is
            charged on the reduced balance.

    Events come back in emission order: each regular payment followed by
    the extra payments attributed to its month. The loop stops once the
    balance is cleared or after MAX_ITERATIONS regular payments.
    """
    start_date = to_date(start_date)
    monthly_rate = annual_rate_percent / 100 / 12
    monthly_payment = round(monthly_payment, 2)
    remaining = round(principal, 2)
    pending = sorted(extra_payments or [], key=lambda p: to_date(p["date"]))
    cursor = 0
    events: list[PaymentEvent] = []

    for i in range(MAX_ITERATIONS):
        if remaining < ZERO_THRESHOLD:
            break

        current = start_date + relativedelta(months=i)
        interest = round(remaining * monthly_rate, 2)
        principal_part = round(monthly_payment - interest, 2)

        # Final payment only covers what is left
        if principal_part > remaining:
            principal_part = remaining

        remaining = round(remaining - principal_part, 2)
        events.append(PaymentEvent(
            id=regular_event_id(current),
            number=i + 1,
            date=current,
            kind=REGULAR,
            payment=round(interest + principal_part, 2),
            interest_part=interest,
            principal_part=principal_part,
            remaining_after=max(0.0, remaining),
            year=current.year,
            month=current.month,
        ))

        while cursor < len(pending) and remaining >= ZERO_THRESHOLD:
            extra = pending[cursor]
            extra_date = to_date(extra["date"])
            if (extra_date.year, extra_date.month) > (current.year, current.month):
                break

            amount = min(round(extra["amount"], 2), remaining)
            remaining = round(remaining - amount, 2)
            events.append(PaymentEvent(
                id=extra["id"],
                number=i + 1,
                date=extra_date,
                kind=EXTRA,
                payment=amount,
                interest_part=0.0,
                principal_part=amount,
                remaining_after=max(0.0, remaining),
                year=extra_date.year,
                month=extra_date.month,
            ))
            cursor += 1

    return events


def unapplied_extra_payments(schedule: list[PaymentEvent], extra_payments: list[dict] | None) -> list[dict]:
    """Extra payments the schedule never consumed because the loan was already cleared."""
    applied = {e.id for e in schedule if e.kind == EXTRA}
    pending = sorted(extra_payments or [], key=lambda p: to_date(p["date"]))
    return [p for p in pending if p["id"] not in applied]


def compute_stats(
    initial_principal: float,
    schedule: list[PaymentEvent],
    checked_ids,
    today: date | None = None,
) -> LoanStats:
    """Progress snapshot from acknowledged regular payments plus all extra payments.

    initial_principal must be positive.
    """
    checked = set(checked_ids or ())
    paid = 0.0
    for event in schedule:
        if event.kind == EXTRA or event.id in checked:
            paid += event.principal_part

    paid = min(round(paid, 2), initial_principal)

    if schedule:
        end_date = schedule[-1].date
    else:
        end_date = today or date.today()

    return LoanStats(
        paid_principal=paid,
        remaining_principal=round(initial_principal - paid, 2),
        progress_percent=paid / initial_principal * 100,
        projected_end_date=end_date,
    )


def next_milestone(progress_percent: float) -> int:
    """Next 10% step strictly above the current progress, capped at 100."""
    step = math.ceil((progress_percent + 0.1) / MILESTONE_STEP) * MILESTONE_STEP
    return min(step, 100)


def split_archive(schedule: list[PaymentEvent], today: date | None = None) -> tuple[list[PaymentEvent], list[PaymentEvent]]:
    """Split events into (archive, active) at the first day of the current month."""
    cutoff = (today or date.today()).replace(day=1)
    archive = [e for e in schedule if e.date < cutoff]
    active = [e for e in schedule if e.date >= cutoff]
    return archive, active


def yearly_utilization(year: int, extra_payments: list[dict] | None, initial_principal: float) -> YearlyUtilization:
    """Special-repayment usage for one calendar year against the 5% cap.

    Counts every entered amount dated in that year, whether or not the
    schedule applied it in full.
    """
    cap = initial_principal * SPECIAL_REPAYMENT_CAP
    paid = round(sum(
        p["amount"] for p in (extra_payments or []) if to_date(p["date"]).year == year
    ), 2)
    return YearlyUtilization(
        year=year,
        paid=paid,
        max=cap,
        percentage=max(0.0, min(100.0, paid / cap * 100)),
        is_maxed=paid >= cap,
    )
