"""
Tests for the daily ledger aggregation functions.

These run without a database: sources are built in memory and fed
straight into the pure merge/classify/summarize functions.
"""

from datetime import datetime
from decimal import Decimal

from daily_ledger.models.enums import EntryType
from daily_ledger.schemas.ledger import DailyLedgerEntry, VendorPaymentRecord
from daily_ledger.schemas.payment_channel import PaymentChannelRecord
from daily_ledger.services.aggregator import (
    apply_filters,
    deduplicate,
    filter_cash_flow,
    matches_channels,
    merge_day,
    receiving_code,
    search_entries,
    sort_by_time,
    summarize,
    summarize_by_channel,
    vendor_payment_description,
    vendor_payment_to_entry,
)


DAY = "2024-03-15"
OPENING = Decimal("100000")


# --- Helpers ---

def make_entry(id, type=EntryType.INCOMING, amount="100", category="Payment Received",
               is_manual=True, time="10:00:00", **extra):
    description = extra.pop("description", f"Entry {id}")
    return DailyLedgerEntry(
        id=str(id),
        date=DAY,
        time=time,
        type=type,
        category=category,
        description=description,
        amount=Decimal(amount),
        is_manual=is_manual,
        **extra,
    )


def make_vendor_payment(id, vendor_name="Acme", receiving_id=None, amount="1200",
                        **extra):
    created_at = extra.pop("created_at", datetime(2024, 3, 15, 9, 30, 5))
    return VendorPaymentRecord(
        id=id,
        vendor_name=vendor_name,
        receiving_id=receiving_id,
        amount=Decimal(amount),
        date=DAY,
        created_at=created_at,
        **extra,
    )


def make_channel(id, name, type):
    return PaymentChannelRecord(id=id, name=name, type=type)


# --- Receiving codes and vendor descriptions ---

class TestVendorPaymentMapping:

    def test_receiving_code_prefixes_s0(self):
        assert receiving_code(1) == "S01"
        assert receiving_code(9) == "S09"

    def test_receiving_code_is_concatenated_not_padded(self):
        # Known quirk: two-digit ids keep the literal "S0" prefix
        assert receiving_code(10) == "S010"
        assert receiving_code(123) == "S0123"

    def test_no_receiving_id_has_no_code(self):
        assert receiving_code(None) is None
        assert receiving_code(0) is None

    def test_description_with_receiving(self):
        assert (
            vendor_payment_description("Acme", 1)
            == "Payment to Acme - Stock Receiving S01"
        )

    def test_description_without_receiving(self):
        assert vendor_payment_description("Acme", None) == "Payment to Acme"

    def test_vendor_payment_becomes_outgoing_system_entry(self):
        entry = vendor_payment_to_entry(make_vendor_payment(
            7, vendor_name="Steel Co", receiving_id=2, time="11:15:00",
            payment_channel_id=3, payment_channel_name="Bank Alfalah",
            reference_number="REF-9",
        ))

        assert entry.id == "vendor_payment_7"
        assert entry.type == EntryType.OUTGOING
        assert entry.category == "Vendor Payment"
        assert entry.description == "Payment to Steel Co - Stock Receiving S02"
        assert entry.customer_name == "Vendor: Steel Co"
        assert entry.payment_method == "Bank Alfalah"
        assert entry.payment_channel_id == 3
        assert entry.bill_number == "REF-9"
        assert entry.reference_type == "vendor_payment"
        assert entry.is_manual is False
        assert entry.time == "11:15:00"

    def test_missing_time_falls_back_to_created_at(self):
        entry = vendor_payment_to_entry(make_vendor_payment(1))
        assert entry.time == "09:30:05"

    def test_missing_channel_defaults_to_cash(self):
        entry = vendor_payment_to_entry(make_vendor_payment(1, receiving_id=4))
        assert entry.payment_method == "Cash"
        assert entry.payment_channel_name == "Cash"
        assert entry.notes == "Vendor payment via Cash - Stock Receiving S04"

    def test_own_notes_are_kept(self):
        entry = vendor_payment_to_entry(
            make_vendor_payment(1, notes="Paid in advance")
        )
        assert entry.notes == "Paid in advance"


# --- Cash-flow classification ---

class TestCashFlowFilter:

    def test_system_entry_outside_allowlist_is_dropped(self):
        entry = make_entry(1, category="Stock Adjustment", is_manual=False)
        assert filter_cash_flow([entry]) == []

    def test_manual_entry_kept_whatever_its_category(self):
        entry = make_entry(1, category="Stock Adjustment", is_manual=True)
        assert filter_cash_flow([entry]) == [entry]

    def test_allowlisted_system_entry_kept(self):
        entry = make_entry(1, category="Staff Salary", is_manual=False,
                           type=EntryType.OUTGOING)
        assert filter_cash_flow([entry]) == [entry]

    def test_allowlist_is_case_sensitive(self):
        kept = make_entry(1, category="salary", is_manual=False)
        dropped = make_entry(2, category="SALARY", is_manual=False)
        assert filter_cash_flow([kept, dropped]) == [kept]

    def test_invoice_bookkeeping_dropped(self):
        entries = [
            make_entry(1, category="Sale Invoice", is_manual=False),
            make_entry(2, category="Invoice", is_manual=False),
            make_entry(3, category="Sale", is_manual=False),
            make_entry(4, category="Payment Received", is_manual=False,
                       description="Products sold to Ali"),
            make_entry(5, category="Payment Received", is_manual=False,
                       description="Invoice amount: 5000"),
        ]
        assert filter_cash_flow(entries) == []

    def test_system_vendor_payment_category_not_admitted(self):
        # Vendor payments come from their own table instead
        entry = make_entry(1, category="Vendor Payment", is_manual=False,
                           type=EntryType.OUTGOING)
        assert filter_cash_flow([entry]) == []


# --- Deduplication and ordering ---

class TestDeduplicate:

    def test_first_occurrence_wins(self):
        first = make_entry("a", amount="100")
        second = make_entry("a", amount="999")
        other = make_entry("b")

        result = deduplicate([first, second, other])

        assert result == [first, other]

    def test_result_has_unique_ids(self):
        entries = [make_entry(i % 3) for i in range(10)]
        ids = [e.id for e in deduplicate(entries)]
        assert len(ids) == len(set(ids)) == 3


class TestSortByTime:

    def test_sorted_ascending(self):
        entries = [
            make_entry(1, time="14:00:00"),
            make_entry(2, time="08:05:00"),
            make_entry(3, time="09:59:59"),
        ]
        assert [e.id for e in sort_by_time(entries)] == ["2", "3", "1"]

    def test_equal_times_keep_order(self):
        entries = [make_entry(i, time="10:00:00") for i in range(4)]
        assert [e.id for e in sort_by_time(entries)] == ["0", "1", "2", "3"]


# --- Filters ---

class TestChannelFilter:

    def test_entry_with_channel_id_matches_by_id(self):
        entry = make_entry(1, payment_channel_id=3, payment_method="Cash")
        channels = [make_channel(3, "Bank", "bank")]
        assert matches_channels(entry, {3}, channels) is True
        assert matches_channels(entry, {4}, channels) is False

    def test_fallback_matches_channel_name_ignoring_case(self):
        entry = make_entry(1, payment_method="Cash")
        channels = [make_channel(3, "CASH", "drawer")]
        assert matches_channels(entry, {3}, channels) is True

    def test_fallback_matches_channel_type_ignoring_case(self):
        entry = make_entry(1, payment_method="Cash")
        channels = [make_channel(3, "Front Counter", "cash")]
        assert matches_channels(entry, {3}, channels) is True

    def test_fallback_fails_when_selected_channel_is_not_cash(self):
        entry = make_entry(1, payment_method="Cash")
        channels = [
            make_channel(1, "Cash", "cash"),
            make_channel(3, "Meezan", "bank"),
        ]
        assert matches_channels(entry, {3}, channels) is False

    def test_fallback_uses_selected_channel_even_if_another_matches_first(self):
        entry = make_entry(1, payment_method="Cash")
        channels = [
            make_channel(1, "Cash", "cash"),
            make_channel(3, "Petty Cash", "cash"),
        ]
        assert matches_channels(entry, {3}, channels) is True

    def test_entry_without_channel_or_method_is_excluded(self):
        entry = make_entry(1)
        channels = [make_channel(1, "Cash", "cash")]
        assert matches_channels(entry, {1}, channels) is False

    def test_empty_selection_keeps_everything(self):
        entries = [make_entry(1), make_entry(2, payment_channel_id=9)]
        assert apply_filters(entries, channel_ids=[]) == entries


class TestCustomerFilter:

    def test_only_that_customers_entries_remain(self):
        mine = make_entry(1, customer_id=5)
        theirs = make_entry(2, customer_id=6)
        nobody = make_entry(3)
        assert apply_filters([mine, theirs, nobody], customer_id=5) == [mine]


class TestSearch:

    def test_matches_any_text_field_ignoring_case(self):
        entries = [
            make_entry(1, description="Rent for March"),
            make_entry(2, customer_name="Ali Traders"),
            make_entry(3, bill_number="I00042"),
            make_entry(4, notes="paid by cheque"),
            make_entry(5, category="Office Rent"),
        ]
        assert [e.id for e in search_entries(entries, "RENT")] == ["1", "5"]
        assert [e.id for e in search_entries(entries, "i0004")] == ["3"]
        assert [e.id for e in search_entries(entries, "cheque")] == ["4"]
        assert [e.id for e in search_entries(entries, "traders")] == ["2"]

    def test_empty_term_returns_everything(self):
        entries = [make_entry(1), make_entry(2)]
        assert search_entries(entries, "") == entries
        assert search_entries(entries, None) == entries


# --- Summaries ---

class TestSummarize:

    def test_totals_split_by_type(self):
        entries = [
            make_entry(1, type=EntryType.INCOMING, amount="500"),
            make_entry(2, type=EntryType.INCOMING, amount="250.50"),
            make_entry(3, type=EntryType.OUTGOING, amount="300"),
        ]
        summary = summarize(entries, DAY, OPENING)

        assert summary.total_incoming == Decimal("750.50")
        assert summary.total_outgoing == Decimal("300")
        assert summary.net_movement == Decimal("450.50")
        assert summary.transactions_count == 3

    def test_closing_balance_identity(self):
        entries = [
            make_entry(1, type=EntryType.INCOMING, amount="1000"),
            make_entry(2, type=EntryType.OUTGOING, amount="4000"),
        ]
        summary = summarize(entries, DAY, OPENING)

        assert summary.closing_balance == (
            summary.opening_balance
            + summary.total_incoming
            - summary.total_outgoing
        )
        assert summary.closing_balance == Decimal("97000")

    def test_empty_day(self):
        summary = summarize([], DAY, OPENING)
        assert summary.total_incoming == 0
        assert summary.total_outgoing == 0
        assert summary.closing_balance == OPENING
        assert summary.transactions_count == 0

    def test_opening_balance_is_not_carried_forward(self):
        """
        Known inconsistency: the ledger's UI talks about balance
        transfer between days, but every day opens at the configured
        constant regardless of the previous day's close.
        """
        monday = summarize(
            [make_entry(1, type=EntryType.INCOMING, amount="5000")],
            "2024-03-11", OPENING,
        )
        tuesday = summarize([], "2024-03-12", OPENING)

        assert monday.closing_balance == Decimal("105000")
        assert tuesday.opening_balance == OPENING
        assert tuesday.opening_balance != monday.closing_balance


class TestSummarizeByChannel:

    def test_groups_by_channel_name_then_method(self):
        entries = [
            make_entry(1, amount="500", payment_channel_name="Cash"),
            make_entry(2, amount="200", type=EntryType.OUTGOING,
                       payment_channel_name="Cash"),
            make_entry(3, amount="900", payment_method="JazzCash"),
            make_entry(4, amount="50", type=EntryType.OUTGOING),
        ]
        summaries = summarize_by_channel(entries)

        by_name = {s.payment_channel_name: s for s in summaries}
        assert by_name["Cash"].net_movement == Decimal("300")
        assert by_name["Cash"].transactions_count == 2
        assert by_name["JazzCash"].total_incoming == Decimal("900")
        assert by_name["Other"].total_outgoing == Decimal("50")
        # Highest net inflow first
        assert [s.payment_channel_name for s in summaries] == [
            "JazzCash", "Cash", "Other",
        ]


# --- End to end ---

class TestMergeDay:

    def test_manual_vendor_and_invoice_bookkeeping(self):
        manual = make_entry(
            "101", type=EntryType.INCOMING, amount="500",
            category="Payment Received", is_manual=True, time="10:00:00",
        )
        invoice_row = make_entry(
            "102", type=EntryType.INCOMING, amount="9999",
            category="Sale Invoice", is_manual=False, time="09:00:00",
        )
        vendor = make_vendor_payment(
            1, vendor_name="Steel Co", receiving_id=2, amount="1200",
            time="11:00:00",
        )

        view = merge_day(DAY, [manual, invoice_row], [vendor], OPENING)

        assert [e.id for e in view.entries] == ["101", "vendor_payment_1"]
        assert view.summary.total_incoming == Decimal("500")
        assert view.summary.total_outgoing == Decimal("1200")
        assert view.summary.net_movement == Decimal("-700")
        assert view.summary.closing_balance == Decimal("99300")
        assert view.summary.transactions_count == 2
        assert view.unavailable_sources == []

    def test_duplicate_id_across_sources_kept_once(self):
        vendor = make_vendor_payment(1, amount="1200", time="11:00:00")
        clash = make_entry(
            "vendor_payment_1", type=EntryType.OUTGOING, amount="1200",
            is_manual=True,
        )

        view = merge_day(DAY, [clash], [vendor], OPENING)

        assert len(view.entries) == 1
        assert view.entries[0].is_manual is False
        assert view.summary.total_outgoing == Decimal("1200")

    def test_search_narrows_list_but_not_summary(self):
        entries = [
            make_entry(1, amount="100", description="Cash sale counter"),
            make_entry(2, amount="200", description="Bank deposit"),
        ]
        view = merge_day(DAY, entries, [], OPENING, search="bank")

        assert [e.id for e in view.entries] == ["2"]
        assert view.summary.total_incoming == Decimal("300")

    def test_filters_apply_before_summary(self):
        entries = [
            make_entry(1, amount="100", customer_id=5),
            make_entry(2, amount="200", customer_id=6),
        ]
        view = merge_day(DAY, entries, [], OPENING, customer_id=5)

        assert view.summary.total_incoming == Decimal("100")
        assert view.summary.transactions_count == 1

    def test_unavailable_sources_are_reported(self):
        view = merge_day(
            DAY, [make_entry(1)], [], OPENING,
            unavailable_sources=["vendor_payments"],
        )
        assert view.unavailable_sources == ["vendor_payments"]
        assert view.is_partial is True
        assert len(view.entries) == 1
