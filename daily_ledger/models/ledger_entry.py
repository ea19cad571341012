"""
Ledger entry model (the centralized ledger table).

Holds manual entries typed in by users and system entries
written by other subsystems (customer payments, salaries,
invoice bookkeeping). Vendor payments are stored in their own
table and are not copied here.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, Boolean, Integer, Text,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from daily_ledger.models.base import Base
from daily_ledger.models.enums import EntryType


class LedgerEntry(Base):
    """
    One financial event on one day.

    The sign lives in entry_type; amount is always non-negative.
    Only rows with is_manual=True may be edited or deleted.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(8), nullable=False)
    entry_type: Mapped[EntryType] = mapped_column(
        SAEnum(
            EntryType,
            name="ledger_entry_type_enum",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reference_type: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    customer_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    customer_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    payment_method: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    payment_channel_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    payment_channel_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    bill_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_manual: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.date} {self.entry_type.value} "
            f"{self.amount} ({self.category})>"
        )
