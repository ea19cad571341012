"""
Daily ledger API endpoints.

Thin layer: HTTP status codes and commits here, everything else in
DailyLedgerService. Change events go out only once the commit has
succeeded.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response
from sqlalchemy.orm import Session

from daily_ledger.events import LedgerEventHub
from daily_ledger.exceptions import (
    EntryNotFoundError,
    EntryPermissionError,
    LedgerTimeoutError,
    LedgerValidationError,
    LedgerWriteError,
)
from daily_ledger.models.base import get_db
from daily_ledger.schemas.ledger import (
    DATE_PATTERN,
    DailyLedgerEntry,
    DailyLedgerView,
    ManualEntryCreate,
    ManualEntryUpdate,
)
from daily_ledger.services.daily_ledger_service import DailyLedgerService

router = APIRouter(prefix="/daily-ledger", tags=["Daily Ledger"])

RETRY_AFTER_SECONDS = "5"


def get_event_hub(request: Request) -> LedgerEventHub | None:
    return getattr(request.app.state, "ledger_events", None)


def get_service(
    db: Session = Depends(get_db),
    events: LedgerEventHub | None = Depends(get_event_hub),
) -> DailyLedgerService:
    return DailyLedgerService(db, events=events)


@router.get("/{date}", response_model=DailyLedgerView)
def load_day(
    date: str = Path(pattern=DATE_PATTERN),
    customer_id: int | None = None,
    channel_id: list[int] | None = Query(default=None),
    search: str | None = None,
    service: DailyLedgerService = Depends(get_service),
):
    """
    Get the merged ledger and summary for one day.

    If a source could not be read, the response still comes back
    with what was available and names the missing source in
    unavailable_sources.
    """
    try:
        return service.load_day(
            date,
            customer_id=customer_id,
            channel_ids=channel_id,
            search=search,
        )
    except LedgerTimeoutError as e:
        raise HTTPException(
            status_code=503,
            detail=str(e),
            headers={"Retry-After": RETRY_AFTER_SECONDS},
        )


@router.post("/entries", response_model=DailyLedgerEntry, status_code=201)
def create_entry(
    request: ManualEntryCreate,
    db: Session = Depends(get_db),
    service: DailyLedgerService = Depends(get_service),
):
    """Record a manual transaction."""
    try:
        entry = service.create_manual_entry(request)
        db.commit()
        service.publish_committed()
        return entry
    except LedgerValidationError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=400, detail=str(e))
    except LedgerWriteError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/entries/{entry_id}", response_model=DailyLedgerEntry)
def edit_entry(
    entry_id: str,
    changes: ManualEntryUpdate,
    date: str | None = Query(default=None, pattern=DATE_PATTERN),
    db: Session = Depends(get_db),
    service: DailyLedgerService = Depends(get_service),
):
    """Edit a manual entry. System entries are read-only."""
    try:
        entry = service.edit_manual_entry(entry_id, changes, date=date)
        db.commit()
        service.publish_committed()
        return entry
    except EntryNotFoundError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=404, detail=str(e))
    except EntryPermissionError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=403, detail=str(e))
    except LedgerValidationError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=400, detail=str(e))
    except LedgerWriteError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/entries/{entry_id}", status_code=204)
def delete_entry(
    entry_id: str,
    date: str | None = Query(default=None, pattern=DATE_PATTERN),
    db: Session = Depends(get_db),
    service: DailyLedgerService = Depends(get_service),
):
    """Delete a manual entry. System entries are read-only."""
    try:
        service.delete_manual_entry(entry_id, date=date)
        db.commit()
        service.publish_committed()
    except EntryNotFoundError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=404, detail=str(e))
    except EntryPermissionError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=403, detail=str(e))
    except LedgerWriteError as e:
        db.rollback()
        service.discard_events()
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=204)
