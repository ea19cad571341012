"""
Tests for category auto-classification and the cash-flow allowlist.
"""

import pytest

from daily_ledger.categories import (
    CASH_FLOW_CATEGORIES,
    auto_category,
    is_cash_flow_entry,
    is_salary_category,
    is_vendor_category,
)
from daily_ledger.models.enums import EntryType


class TestAutoCategory:

    def test_incoming_from_customer(self):
        assert auto_category(EntryType.INCOMING, "anything", customer_id=4) == "Payment Received"

    def test_incoming_without_customer(self):
        assert auto_category(EntryType.INCOMING, "Scrap sold") == "Other Income"

    @pytest.mark.parametrize("description, expected", [
        ("March salary for Ahmed", "Staff Salary"),
        ("STAFF lunch", "Staff Salary"),
        ("Shop rent", "Office Rent"),
        ("Electricity bill", "Utilities Bill"),
        ("utilities for warehouse", "Utilities Bill"),
        ("Paid supplier for pipes", "Vendor Payment"),
        ("Vendor advance", "Vendor Payment"),
        ("Tea and biscuits", "Other Expense"),
    ])
    def test_outgoing_by_keyword(self, description, expected):
        assert auto_category(EntryType.OUTGOING, description) == expected

    def test_first_keyword_wins(self):
        # "salary" is checked before "vendor"
        assert auto_category(EntryType.OUTGOING, "vendor salary") == "Staff Salary"

    def test_outgoing_ignores_customer(self):
        assert auto_category(EntryType.OUTGOING, "Refund", customer_id=3) == "Other Expense"


class TestKeywordMatching:

    def test_vendor_keywords(self):
        assert is_vendor_category("Vendor Payment")
        assert is_vendor_category("supplier settlement")
        assert not is_vendor_category("Office Rent")

    def test_salary_keywords(self):
        assert is_salary_category("Staff Salary")
        assert is_salary_category("salary")
        assert not is_salary_category("Bank Charges")


class TestCashFlowAllowlist:

    def test_contains_every_documented_category(self):
        expected = {
            "Payment Received", "Customer Payment", "Invoice Payment",
            "Advance Payment", "Return Refund", "Cash Refund",
            "Staff Salary", "Salary Payment", "salary", "Labor Payment",
            "Business Expense", "Manual Income", "Manual Expense",
            "Office Rent", "Utilities Bill", "Transportation",
            "Raw Materials", "Equipment Purchase", "Marketing Expense",
            "Professional Services", "Bank Charges", "Other Income",
            "Other Expense",
        }
        assert CASH_FLOW_CATEGORIES == expected

    def test_unknown_upstream_category_silently_excluded(self):
        # A category coined upstream but missing from the allowlist
        # vanishes from the daily ledger instead of raising.
        assert is_cash_flow_entry("Loan Disbursement", "Loan to staff", False) is False

    def test_manual_always_included(self):
        assert is_cash_flow_entry("Sale Invoice", "Invoice amount: 10", True) is True
