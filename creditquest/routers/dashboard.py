import logging
import time
from datetime import date, datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from creditquest.calculator import (
    REGULAR, generate_schedule, compute_stats, yearly_utilization,
    unapplied_extra_payments, split_archive, next_milestone,
)
from creditquest.schemas import (
    DataDocument, ExtraPayment, ExtraPaymentCreate, PaymentEventResponse,
    ScheduleResponse, ScheduleSummary, StatsResponse, UtilizationResponse,
)
from creditquest.store import DocumentStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])


def _load_document(store: DocumentStore) -> DataDocument:
    """Load the stored document, requiring a loan profile to be set up."""
    document = DataDocument.model_validate(store.load())
    if document.profile is None:
        raise HTTPException(status_code=404, detail="Loan profile not found")
    return document


def _extras(document: DataDocument) -> list[dict]:
    return [p.model_dump() for p in document.extra_payments or []]


def _schedule(document: DataDocument):
    profile = document.profile
    return generate_schedule(
        principal=profile.principal,
        annual_rate_percent=profile.interest_rate,
        monthly_payment=profile.monthly_payment,
        start_date=profile.start_date,
        extra_payments=_extras(document),
    )


@router.get("/schedule", response_model=ScheduleResponse)
def get_schedule(store: DocumentStore = Depends(get_store)):
    document = _load_document(store)
    extras = _extras(document)
    events = _schedule(document)
    checked = set(document.checked_ids or [])
    archive, active = split_archive(events)
    archived_ids = {(e.kind, e.id) for e in archive}

    rows = [
        PaymentEventResponse(
            id=e.id,
            number=e.number,
            date=e.date.isoformat(),
            kind=e.kind,
            payment=e.payment,
            interest_part=e.interest_part,
            principal_part=e.principal_part,
            remaining_after=e.remaining_after,
            year=e.year,
            month=e.month,
            is_checked=e.kind != REGULAR or e.id in checked,
            is_archived=(e.kind, e.id) in archived_ids,
        )
        for e in events
    ]

    remaining_balance = events[-1].remaining_after if events else 0.0
    warning = None
    if remaining_balance > 0:
        warning = "Monthly payment does not cover interest. Loan will not be paid off."

    summary = ScheduleSummary(
        total_regular_payments=sum(1 for e in events if e.kind == REGULAR),
        total_extra_payments=sum(1 for e in events if e.kind != REGULAR),
        total_interest=round(sum(e.interest_part for e in events), 2),
        total_paid=round(sum(e.payment for e in events), 2),
        payoff_date=events[-1].date.isoformat() if events else "",
        remaining_balance=remaining_balance,
        archive_count=len(archive),
        active_count=len(active),
        warning=warning,
    )

    return ScheduleResponse(
        summary=summary,
        events=rows,
        unapplied_extra_payments=unapplied_extra_payments(events, extras),
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(store: DocumentStore = Depends(get_store)):
    document = _load_document(store)
    stats = compute_stats(document.profile.principal, _schedule(document), document.checked_ids or [])
    return StatsResponse(
        paid_principal=stats.paid_principal,
        remaining_principal=stats.remaining_principal,
        progress_percent=round(stats.progress_percent, 2),
        projected_end_date=stats.projected_end_date.isoformat(),
        next_milestone=next_milestone(stats.progress_percent),
    )


@router.get("/utilization", response_model=UtilizationResponse)
def get_utilization(year: int | None = Query(None, ge=1900, le=9999), store: DocumentStore = Depends(get_store)):
    document = _load_document(store)
    if year is None:
        year = date.today().year
    result = yearly_utilization(year, _extras(document), document.profile.principal)
    return UtilizationResponse(
        year=result.year,
        paid=result.paid,
        max=round(result.max, 2),
        percentage=round(result.percentage, 2),
        is_maxed=result.is_maxed,
    )


@router.post("/extras", response_model=ExtraPayment, status_code=201)
def add_extra_payment(extra: ExtraPaymentCreate, store: DocumentStore = Depends(get_store)):
    document = DataDocument.model_validate(store.load())
    if document.profile is None:
        raise HTTPException(status_code=409, detail="Set up a loan profile before adding extra payments")

    existing = document.extra_payments or []
    taken = {p.id for p in existing}
    base_id = f"extra-{int(time.time() * 1000)}"
    payment_id = base_id
    suffix = 1
    while payment_id in taken:
        payment_id = f"{base_id}-{suffix}"
        suffix += 1

    payment = ExtraPayment(
        id=payment_id,
        date=extra.date or datetime.now(timezone.utc).isoformat(),
        amount=extra.amount,
    )
    document.extra_payments = existing + [payment]
    store.save(document.dump())
    logger.info(f"Extra payment {payment.id} of {payment.amount:.2f} recorded")
    return payment


def _regular_event_ids(document: DataDocument) -> set[str]:
    return {e.id for e in _schedule(document) if e.kind == REGULAR}


@router.post("/checked/{event_id}")
def mark_checked(event_id: str, store: DocumentStore = Depends(get_store)):
    document = _load_document(store)
    if event_id not in _regular_event_ids(document):
        raise HTTPException(status_code=422, detail="Only regular payments of the schedule can be checked")
    checked = document.checked_ids or []
    # Already checked is a no-op
    if event_id not in checked:
        document.checked_ids = checked + [event_id]
        store.save(document.dump())
    return {"detail": "Marked as paid"}


@router.delete("/checked/{event_id}")
def unmark_checked(event_id: str, store: DocumentStore = Depends(get_store)):
    document = _load_document(store)
    checked = document.checked_ids or []
    if event_id in checked:
        document.checked_ids = [c for c in checked if c != event_id]
        store.save(document.dump())
    return {"detail": "Unmarked as paid"}
