"""
Vendor and vendor payment models.

Vendor payments live in their own table. The daily ledger reads
them directly instead of relying on upstream writers to mirror
them into ledger_entries, so they are never counted twice.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from daily_ledger.models.base import Base


class Vendor(Base):
    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    payments: Mapped[list["VendorPayment"]] = relationship(
        back_populates="vendor"
    )

    def __repr__(self) -> str:
        return f"<Vendor {self.name}>"


class VendorPayment(Base):
    """A payment made to a vendor, optionally against a stock receiving."""

    __tablename__ = "vendor_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendors.id"), nullable=True, index=True
    )
    # Denormalized at write time; the vendors row wins when both exist
    vendor_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    receiving_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    payment_channel_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    payment_channel_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    vendor: Mapped["Vendor | None"] = relationship(back_populates="payments")

    def __repr__(self) -> str:
        return f"<VendorPayment {self.date} {self.amount}>"
