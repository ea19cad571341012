"""
Shared enumerations for database models.
"""

import enum


class EntryType(str, enum.Enum):
    """Direction of a ledger entry. The amount itself is never signed."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class PaymentType(str, enum.Enum):
    """How a recorded customer payment is applied."""
    BILL_PAYMENT = "bill_payment"
    ADVANCE_PAYMENT = "advance_payment"


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
