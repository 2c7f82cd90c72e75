import logging
from fastapi import APIRouter, Depends, HTTPException
from creditquest.calculator import InsufficientPaymentError, convert_legacy_event_id, validate_profile
from creditquest.schemas import DataDocument, LoanProfile
from creditquest.store import DocumentStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["data"])


@router.get("/data")
def load_data(store: DocumentStore = Depends(get_store)):
    return store.load()


@router.post("/data")
def save_data(document: DataDocument, store: DocumentStore = Depends(get_store)):
    store.save(document.dump())
    return {"success": True}


@router.post("/data/import")
def import_legacy_data(document: DataDocument, store: DocumentStore = Depends(get_store)):
    """Store a document saved by the JavaScript app, whose payment ids use 0-based months."""
    if document.checked_ids is not None:
        document.checked_ids = [convert_legacy_event_id(c) for c in document.checked_ids]
    store.save(document.dump())
    logger.info(f"Imported legacy document with {len(document.checked_ids or [])} checked payments")
    return {"success": True}


@router.delete("/data")
def reset_data(store: DocumentStore = Depends(get_store)):
    store.clear()
    logger.info("Profile reset: stored document cleared")
    return {"success": True}


@router.put("/profile", response_model=LoanProfile)
def setup_profile(profile: LoanProfile, store: DocumentStore = Depends(get_store)):
    try:
        validate_profile(profile.principal, profile.interest_rate, profile.monthly_payment)
    except InsufficientPaymentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    # Keep existing checks and extras
    document = store.load()
    document["profile"] = profile.model_dump(by_alias=True)
    store.save(document)
    return profile
