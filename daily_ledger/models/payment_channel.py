"""
Payment channel models.

A payment channel is a settlement rail (cash drawer, bank account,
mobile wallet). Its total_incoming/total_outgoing columns and the
per-day rows are running totals: a secondary index that can lag
behind the ledger, never the source of truth.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, Boolean, ForeignKey, Integer, Text,
    UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from daily_ledger.models.base import Base
from daily_ledger.models.enums import EntryType


class PaymentChannel(Base):
    __tablename__ = "payment_channels"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    total_incoming: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    total_outgoing: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    daily_totals: Mapped[list["PaymentChannelDailyLedger"]] = relationship(
        back_populates="channel"
    )

    def __repr__(self) -> str:
        return f"<PaymentChannel {self.name} ({self.type})>"


class PaymentChannelDailyLedger(Base):
    """Amount and count moved through one channel on one day."""

    __tablename__ = "payment_channel_daily_ledgers"
    __table_args__ = (
        UniqueConstraint("payment_channel_id", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    payment_channel_id: Mapped[int] = mapped_column(
        ForeignKey("payment_channels.id"), nullable=False, index=True
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    transaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    channel: Mapped["PaymentChannel"] = relationship(
        back_populates="daily_totals"
    )


class ChannelTotalOutbox(Base):
    """
    A running-total update waiting to be applied.

    Written in the same transaction as the ledger entry it
    describes. applied_at is set exactly once; rows with
    applied_at set are skipped, so reconciliation can be retried
    without counting an entry twice.
    """

    __tablename__ = "channel_total_outbox"

    id: Mapped[int] = mapped_column(primary_key=True)
    ledger_entry_id: Mapped[int] = mapped_column(
        Integer, unique=True, nullable=False
    )
    payment_channel_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    entry_type: Mapped[EntryType] = mapped_column(
        SAEnum(
            EntryType,
            name="outbox_entry_type_enum",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    applied_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )

    def __repr__(self) -> str:
        state = "applied" if self.applied_at else "pending"
        return f"<ChannelTotalOutbox entry={self.ledger_entry_id} {state}>"
