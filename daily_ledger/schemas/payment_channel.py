"""
Pydantic schemas for payment channels.
"""

from decimal import Decimal

from pydantic import BaseModel


class PaymentChannelRecord(BaseModel):
    id: int
    name: str
    type: str
    description: str | None = None
    is_active: bool = True
    total_incoming: Decimal = Decimal("0")
    total_outgoing: Decimal = Decimal("0")

    model_config = {"from_attributes": True}


class ReconcileResponse(BaseModel):
    """Outcome of one pass over the channel-total outbox."""
    applied: int
    failed: int
    pending: int
