"""
Payment channel API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from daily_ledger.api.daily_ledger import get_service
from daily_ledger.models.base import get_db
from daily_ledger.schemas.payment_channel import (
    PaymentChannelRecord,
    ReconcileResponse,
)
from daily_ledger.services.daily_ledger_service import DailyLedgerService

router = APIRouter(prefix="/payment-channels", tags=["Payment Channels"])


@router.get("", response_model=list[PaymentChannelRecord])
def list_channels(service: DailyLedgerService = Depends(get_service)):
    """Active payment channels with their running totals."""
    return service.list_payment_channels()


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile_channel_totals(
    db: Session = Depends(get_db),
    service: DailyLedgerService = Depends(get_service),
):
    """
    Apply any channel running-total updates still pending.

    Safe to call repeatedly: an update that was applied once is
    never applied again.
    """
    result = service.reconcile_channel_totals()
    db.commit()
    return result
