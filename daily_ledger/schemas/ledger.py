"""
Pydantic schemas for daily ledger operations.

The read-side records (DailyLedgerEntry, VendorPaymentRecord) are
the typed shape of rows once they leave the repository: every
optional field is defaulted here, so nothing downstream has to
guess whether a value is missing.
"""

from datetime import date as date_type, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from daily_ledger.models.enums import EntryType


DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def today() -> str:
    return date_type.today().isoformat()


# --- Read Records ---

class DailyLedgerEntry(BaseModel):
    """One row of the merged daily view."""
    id: str
    date: str
    time: str
    type: EntryType
    category: str
    description: str
    amount: Decimal
    reference_id: int | None = None
    reference_type: str | None = None
    customer_id: int | None = None
    customer_name: str | None = None
    payment_method: str | None = None
    payment_channel_id: int | None = None
    payment_channel_name: str | None = None
    notes: str | None = None
    bill_number: str | None = None
    is_manual: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("is_manual", mode="before")
    @classmethod
    def coerce_manual_flag(cls, v) -> bool:
        # SQLite hands back 0/1, legacy rows may hold NULL
        return bool(v)


class VendorPaymentRecord(BaseModel):
    id: int
    vendor_name: str = "Unknown Vendor"
    receiving_id: int | None = None
    amount: Decimal = Decimal("0")
    date: str
    time: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    payment_channel_id: int | None = None
    payment_channel_name: str | None = None
    notes: str | None = None
    reference_number: str | None = None


# --- Request Schemas ---

class ManualEntryCreate(BaseModel):
    """
    A transaction typed in from the daily ledger form.

    Domain rules (non-blank description, positive amount, known
    customer and channel) are checked by the service so that they
    surface as LedgerValidationError.
    """
    type: EntryType
    description: str = Field(max_length=255)
    amount: Decimal
    category: str | None = Field(default=None, max_length=100)
    customer_id: int | None = None
    payment_method: str | None = Field(default=None, max_length=100)
    payment_channel_id: int | None = None
    payment_channel_name: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    date: str = Field(default_factory=today, pattern=DATE_PATTERN)
    # Open invoice to allocate a customer payment against
    invoice_id: int | None = None


class ManualEntryUpdate(BaseModel):
    """Fields of a manual entry that may change. Anything else is rejected."""
    description: str | None = Field(default=None, max_length=255)
    amount: Decimal | None = None
    category: str | None = Field(default=None, max_length=100)
    payment_method: str | None = Field(default=None, max_length=100)
    payment_channel_name: str | None = Field(default=None, max_length=100)
    notes: str | None = None

    model_config = {"extra": "forbid"}


class CustomerPaymentCreate(BaseModel):
    """What the repository needs to record a customer payment."""
    customer_id: int
    amount: Decimal = Field(gt=0)
    payment_type: str
    payment_method: str | None = None
    payment_channel_id: int | None = None
    payment_channel_name: str | None = None
    reference: str | None = None
    notes: str | None = None
    date: str = Field(pattern=DATE_PATTERN)
    time: str
    category: str = "Payment Received"
    created_by: str = "daily_ledger_manual"


# --- Response Schemas ---

class DailySummary(BaseModel):
    date: str
    opening_balance: Decimal
    closing_balance: Decimal
    total_incoming: Decimal
    total_outgoing: Decimal
    net_movement: Decimal
    transactions_count: int


class ChannelDaySummary(BaseModel):
    """Money moved through one payment channel on the loaded day."""
    payment_channel_name: str
    total_incoming: Decimal
    total_outgoing: Decimal
    net_movement: Decimal
    transactions_count: int


class DailyLedgerView(BaseModel):
    """
    Everything the daily ledger shows for one date.

    unavailable_sources names the read sources that failed; the
    view is then partial but still usable.
    """
    date: str
    entries: list[DailyLedgerEntry]
    summary: DailySummary
    channel_summaries: list[ChannelDaySummary] = []
    unavailable_sources: list[str] = []

    @property
    def is_partial(self) -> bool:
        return bool(self.unavailable_sources)
