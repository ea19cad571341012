"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from daily_ledger.models.base import Base
from daily_ledger.models.enums import EntryType, PaymentType, InvoiceStatus
from daily_ledger.models.audit_log import AuditLog
from daily_ledger.models.ledger_entry import LedgerEntry
from daily_ledger.models.vendor import Vendor, VendorPayment
from daily_ledger.models.payment_channel import (
    PaymentChannel,
    PaymentChannelDailyLedger,
    ChannelTotalOutbox,
)
from daily_ledger.models.customer import Customer, Invoice, CustomerPayment

__all__ = [
    "Base",
    "EntryType",
    "PaymentType",
    "InvoiceStatus",
    "AuditLog",
    "LedgerEntry",
    "Vendor",
    "VendorPayment",
    "PaymentChannel",
    "PaymentChannelDailyLedger",
    "ChannelTotalOutbox",
    "Customer",
    "Invoice",
    "CustomerPayment",
]
