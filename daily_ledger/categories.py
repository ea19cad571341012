"""
Ledger categories and the rules built on them.

CASH_FLOW_CATEGORIES decides which system entries from the
centralized ledger count as real cash movement. It must list every
category an upstream writer uses: a system entry whose category is
missing here is silently left out of the daily ledger.
"""

from daily_ledger.models.enums import EntryType


VENDOR_PAYMENT = "Vendor Payment"
STAFF_SALARY = "Staff Salary"
PAYMENT_RECEIVED = "Payment Received"
OTHER_INCOME = "Other Income"
OTHER_EXPENSE = "Other Expense"
OFFICE_RENT = "Office Rent"
UTILITIES_BILL = "Utilities Bill"

# Exact, case-sensitive match. "Vendor Payment" is absent on purpose:
# vendor payments are read from their own table.
CASH_FLOW_CATEGORIES = frozenset({
    PAYMENT_RECEIVED,
    "Customer Payment",
    "Invoice Payment",
    "Advance Payment",
    "Return Refund",
    "Cash Refund",
    STAFF_SALARY,
    "Salary Payment",
    "salary",
    "Labor Payment",
    "Business Expense",
    "Manual Income",
    "Manual Expense",
    OFFICE_RENT,
    UTILITIES_BILL,
    "Transportation",
    "Raw Materials",
    "Equipment Purchase",
    "Marketing Expense",
    "Professional Services",
    "Bank Charges",
    OTHER_INCOME,
    OTHER_EXPENSE,
})

# Invoice bookkeeping: accrual, not cash
ACCRUAL_CATEGORIES = frozenset({"Sale Invoice", "Invoice", "Sale"})
ACCRUAL_DESCRIPTION_MARKERS = ("Products sold", "Invoice amount:")

VENDOR_KEYWORDS = ("vendor", "supplier")
SALARY_KEYWORDS = ("salary", "staff")


def _mentions(text: str, keywords) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def is_vendor_category(category: str) -> bool:
    return _mentions(category, VENDOR_KEYWORDS)


def is_salary_category(category: str) -> bool:
    return _mentions(category, SALARY_KEYWORDS)


def auto_category(
    entry_type: EntryType,
    description: str,
    customer_id: int | None = None,
) -> str:
    """
    Best-effort category for an entry the user did not categorize.

    Incoming entries depend only on whether a customer is attached.
    Outgoing entries are classified by keywords in the description,
    first match wins.
    """
    if entry_type == EntryType.INCOMING:
        return PAYMENT_RECEIVED if customer_id else OTHER_INCOME

    desc = description.lower()
    if "salary" in desc or "staff" in desc:
        return STAFF_SALARY
    if "rent" in desc:
        return OFFICE_RENT
    if "utilities" in desc or "bill" in desc:
        return UTILITIES_BILL
    if "vendor" in desc or "supplier" in desc:
        return VENDOR_PAYMENT
    return OTHER_EXPENSE


def is_accrual_entry(category: str, description: str | None) -> bool:
    """True for sale/invoice bookkeeping rows that moved no cash."""
    if category in ACCRUAL_CATEGORIES:
        return True
    description = description or ""
    return any(marker in description for marker in ACCRUAL_DESCRIPTION_MARKERS)


def is_cash_flow_entry(
    category: str,
    description: str | None,
    is_manual: bool,
) -> bool:
    """
    Whether a centralized-ledger row belongs in the daily cash view.

    Manual entries always do. System entries need a category on the
    allowlist and must not look like invoice bookkeeping.
    """
    if is_manual:
        return True
    if is_accrual_entry(category, description):
        return False
    return category in CASH_FLOW_CATEGORIES
