"""
Ledger repository, the data-access boundary.

Everything the daily ledger reads or writes goes through here.
Rows leave this module as pydantic records with their optional
fields already defaulted; nothing upstream has to coalesce
missing values again.

Writes only flush. The caller owns the commit.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from daily_ledger.models.customer import Customer, CustomerPayment, Invoice
from daily_ledger.models.enums import EntryType, InvoiceStatus, PaymentType
from daily_ledger.models.ledger_entry import LedgerEntry
from daily_ledger.models.payment_channel import PaymentChannel
from daily_ledger.models.vendor import Vendor, VendorPayment
from daily_ledger.schemas.ledger import (
    CustomerPaymentCreate,
    DailyLedgerEntry,
    VendorPaymentRecord,
)
from daily_ledger.schemas.payment_channel import PaymentChannelRecord


# Columns a manual entry may change after it was written
EDITABLE_FIELDS = frozenset({
    "description",
    "amount",
    "category",
    "payment_method",
    "payment_channel_name",
    "notes",
})


def to_daily_entry(row: LedgerEntry) -> DailyLedgerEntry:
    return DailyLedgerEntry(
        id=str(row.id),
        date=row.date,
        time=row.time,
        type=row.entry_type,
        category=row.category,
        description=row.description,
        amount=row.amount,
        reference_id=row.reference_id,
        reference_type=row.reference_type,
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        payment_method=row.payment_method,
        payment_channel_id=row.payment_channel_id,
        payment_channel_name=row.payment_channel_name,
        notes=row.notes,
        bill_number=row.bill_number,
        is_manual=row.is_manual,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class LedgerRepository:

    def __init__(self, db: Session):
        self.db = db

    # --- Reads ---

    def get_daily_ledger_entries(
        self, date: str, customer_id: int | None = None
    ) -> list[DailyLedgerEntry]:
        """Centralized ledger rows for one date, oldest first."""
        query = select(LedgerEntry).where(LedgerEntry.date == date)
        if customer_id:
            query = query.where(LedgerEntry.customer_id == customer_id)
        rows = self.db.execute(
            query.order_by(LedgerEntry.time, LedgerEntry.id)
        ).scalars().all()
        return [to_daily_entry(row) for row in rows]

    def get_vendor_payments(self, date: str) -> list[VendorPaymentRecord]:
        """
        Vendor payments for one date with a positive amount.

        The vendor master's name wins over the name copied onto the
        payment; "Unknown Vendor" when neither is set.
        """
        rows = self.db.execute(
            select(VendorPayment, Vendor.name)
            .outerjoin(Vendor, VendorPayment.vendor_id == Vendor.id)
            .where(VendorPayment.date == date, VendorPayment.amount > 0)
            .order_by(VendorPayment.created_at, VendorPayment.id)
        ).all()

        return [
            VendorPaymentRecord(
                id=payment.id,
                vendor_name=master_name or payment.vendor_name or "Unknown Vendor",
                receiving_id=payment.receiving_id,
                amount=payment.amount,
                date=payment.date,
                time=payment.time,
                created_at=payment.created_at,
                updated_at=payment.updated_at,
                payment_channel_id=payment.payment_channel_id,
                payment_channel_name=payment.payment_channel_name,
                notes=payment.notes,
                reference_number=payment.reference_number,
            )
            for payment, master_name in rows
        ]

    def get_payment_channels(
        self, active_only: bool = True
    ) -> list[PaymentChannelRecord]:
        query = select(PaymentChannel).order_by(PaymentChannel.id)
        if active_only:
            query = query.where(PaymentChannel.is_active.is_(True))
        channels = self.db.execute(query).scalars().all()
        return [PaymentChannelRecord.model_validate(c) for c in channels]

    def get_payment_channel(self, channel_id: int) -> PaymentChannel | None:
        return self.db.get(PaymentChannel, channel_id)

    def get_customer(self, customer_id: int) -> Customer | None:
        return self.db.get(Customer, customer_id)

    def get_invoice(self, invoice_id: int) -> Invoice | None:
        return self.db.get(Invoice, invoice_id)

    def get_entry(self, entry_id: int) -> LedgerEntry | None:
        return self.db.get(LedgerEntry, entry_id)

    def get_vendor_payment(self, payment_id: int) -> VendorPayment | None:
        return self.db.get(VendorPayment, payment_id)

    # --- Writes ---

    def create_daily_ledger_entry(self, **fields) -> LedgerEntry:
        entry = LedgerEntry(**fields)
        self.db.add(entry)
        self.db.flush()
        return entry

    def update_manual_entry(self, entry_id: int, changes: dict) -> int:
        """
        Apply changes to a manual entry. Returns the number of rows hit.

        The is_manual condition is part of the statement itself, so a
        system entry can never be changed through here.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")

        result = self.db.execute(
            update(LedgerEntry)
            .where(LedgerEntry.id == entry_id, LedgerEntry.is_manual.is_(True))
            .values(**changes, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def delete_manual_entry(self, entry_id: int) -> int:
        result = self.db.execute(
            delete(LedgerEntry)
            .where(LedgerEntry.id == entry_id, LedgerEntry.is_manual.is_(True))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def record_payment(
        self,
        payment: CustomerPaymentCreate,
        invoice_id: int | None = None,
    ) -> tuple[CustomerPayment, LedgerEntry]:
        """
        Record a customer payment and its ledger entry.

        With an invoice, as much of the payment as the invoice still
        needs is allocated to it; the rest stays on the customer as a
        general credit. The customer's outstanding balance drops by
        the full amount either way.
        """
        customer = self.db.get(Customer, payment.customer_id)
        invoice = self.db.get(Invoice, invoice_id) if invoice_id else None

        allocated = Decimal("0")
        if invoice is not None:
            allocated = min(payment.amount, invoice.remaining_balance)
            invoice.paid_amount += allocated
            invoice.remaining_balance -= allocated
            invoice.status = (
                InvoiceStatus.PAID
                if invoice.remaining_balance <= 0
                else InvoiceStatus.PARTIALLY_PAID
            )

        customer.balance -= payment.amount

        record = CustomerPayment(
            customer_id=customer.id,
            invoice_id=invoice.id if invoice else None,
            amount=payment.amount,
            allocated_amount=allocated,
            payment_type=PaymentType(payment.payment_type),
            payment_method=payment.payment_method,
            payment_channel_id=payment.payment_channel_id,
            payment_channel_name=payment.payment_channel_name,
            reference=payment.reference,
            notes=payment.notes,
            date=payment.date,
            created_by=payment.created_by,
        )
        self.db.add(record)
        self.db.flush()

        entry = self.create_daily_ledger_entry(
            date=payment.date,
            time=payment.time,
            entry_type=EntryType.INCOMING,
            category=payment.category,
            description=payment.reference or f"Payment from {customer.name}",
            amount=payment.amount,
            reference_id=record.id,
            reference_type="customer_payment",
            customer_id=customer.id,
            customer_name=customer.name,
            payment_method=payment.payment_method,
            payment_channel_id=payment.payment_channel_id,
            payment_channel_name=payment.payment_channel_name,
            notes=payment.notes,
            bill_number=invoice.bill_number if invoice else None,
            is_manual=False,
            created_by=payment.created_by,
        )
        return record, entry
