"""
Daily ledger aggregation.

Pure functions that turn the raw sources for one date into the
merged daily view:

1. vendor payments are mapped into ledger entries
2. centralized-ledger entries are narrowed to cash flow
3. both streams are joined (vendor payments first)
4. duplicate ids are dropped, first occurrence wins
5. customer and payment-channel filters are applied
6. entries are ordered by time
7. the day is summarized

Nothing here touches the database; DailyLedgerService does the
fetching and hands the results in.
"""

from collections.abc import Iterable
from decimal import Decimal

from daily_ledger.categories import VENDOR_PAYMENT, is_cash_flow_entry
from daily_ledger.models.enums import EntryType
from daily_ledger.schemas.ledger import (
    ChannelDaySummary,
    DailyLedgerEntry,
    DailyLedgerView,
    DailySummary,
    VendorPaymentRecord,
)
from daily_ledger.schemas.payment_channel import PaymentChannelRecord


ZERO = Decimal("0")
VENDOR_PAYMENT_ID_PREFIX = "vendor_payment_"
DEFAULT_CHANNEL_NAME = "Cash"


# --- Vendor payments ---

def receiving_code(receiving_id: int | None) -> str | None:
    """
    Display code for a stock receiving: "S0" followed by the id.

    The prefix is concatenated, not padded, so id 10 becomes "S010".
    A missing (or zero) id has no code.
    """
    if not receiving_id:
        return None
    return f"S0{receiving_id}"


def vendor_payment_description(
    vendor_name: str, receiving_id: int | None
) -> str:
    code = receiving_code(receiving_id)
    if code:
        return f"Payment to {vendor_name} - Stock Receiving {code}"
    return f"Payment to {vendor_name}"


def vendor_payment_entry_id(payment_id: int) -> str:
    return f"{VENDOR_PAYMENT_ID_PREFIX}{payment_id}"


def vendor_payment_to_entry(payment: VendorPaymentRecord) -> DailyLedgerEntry:
    """Map a vendor payment into the daily ledger's entry shape."""
    code = receiving_code(payment.receiving_id)
    channel_name = payment.payment_channel_name or DEFAULT_CHANNEL_NAME
    receiving_clause = f" - Stock Receiving {code}" if code else ""

    return DailyLedgerEntry(
        id=vendor_payment_entry_id(payment.id),
        date=payment.date,
        time=payment.time or payment.created_at.strftime("%H:%M:%S"),
        type=EntryType.OUTGOING,
        category=VENDOR_PAYMENT,
        description=vendor_payment_description(
            payment.vendor_name, payment.receiving_id
        ),
        amount=payment.amount or ZERO,
        reference_id=payment.id,
        reference_type="vendor_payment",
        customer_id=None,
        customer_name=f"Vendor: {payment.vendor_name}",
        payment_method=channel_name,
        payment_channel_id=payment.payment_channel_id,
        payment_channel_name=channel_name,
        notes=(
            payment.notes
            or f"Vendor payment via {channel_name}{receiving_clause}"
        ),
        bill_number=payment.reference_number,
        is_manual=False,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


# --- Classification and merge ---

def filter_cash_flow(
    entries: Iterable[DailyLedgerEntry],
) -> list[DailyLedgerEntry]:
    """Keep manual entries and allowlisted system entries."""
    return [
        e for e in entries
        if is_cash_flow_entry(e.category, e.description, e.is_manual)
    ]


def deduplicate(entries: Iterable[DailyLedgerEntry]) -> list[DailyLedgerEntry]:
    """Drop every entry whose id was already seen."""
    seen: set[str] = set()
    unique = []
    for entry in entries:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        unique.append(entry)
    return unique


def matches_channels(
    entry: DailyLedgerEntry,
    channel_ids: set[int],
    channels: Iterable[PaymentChannelRecord],
) -> bool:
    """
    Whether an entry went through one of the selected channels.

    Entries without a channel id fall back to matching their
    payment_method against the name or type of a selected channel,
    ignoring case.
    """
    if entry.payment_channel_id:
        return entry.payment_channel_id in channel_ids
    if not entry.payment_method:
        return False

    method = entry.payment_method.lower()
    return any(
        channel.id in channel_ids
        and method in (channel.name.lower(), channel.type.lower())
        for channel in channels
    )


def apply_filters(
    entries: Iterable[DailyLedgerEntry],
    customer_id: int | None = None,
    channel_ids: Iterable[int] | None = None,
    channels: Iterable[PaymentChannelRecord] = (),
) -> list[DailyLedgerEntry]:
    filtered = list(entries)
    if customer_id:
        filtered = [e for e in filtered if e.customer_id == customer_id]

    selected = set(channel_ids or ())
    if selected:
        channels = list(channels)
        filtered = [
            e for e in filtered if matches_channels(e, selected, channels)
        ]
    return filtered


def sort_by_time(entries: Iterable[DailyLedgerEntry]) -> list[DailyLedgerEntry]:
    # Times are zero-padded HH:MM:SS, so string order is time order
    return sorted(entries, key=lambda e: e.time)


def search_entries(
    entries: Iterable[DailyLedgerEntry], term: str | None
) -> list[DailyLedgerEntry]:
    """Case-insensitive text search used by the ledger's search box."""
    if not term:
        return list(entries)
    needle = term.lower()

    def hit(entry: DailyLedgerEntry) -> bool:
        fields = (
            entry.description,
            entry.customer_name,
            entry.category,
            entry.bill_number,
            entry.notes,
        )
        return any(f and needle in f.lower() for f in fields)

    return [e for e in entries if hit(e)]


# --- Summaries ---

def summarize(
    entries: Iterable[DailyLedgerEntry],
    date: str,
    opening_balance: Decimal,
) -> DailySummary:
    """
    Totals for the day.

    opening_balance is the configured constant for every day; it is
    not the previous day's closing balance.
    """
    entries = list(entries)
    total_incoming = sum(
        (e.amount for e in entries if e.type == EntryType.INCOMING), ZERO
    )
    total_outgoing = sum(
        (e.amount for e in entries if e.type == EntryType.OUTGOING), ZERO
    )

    return DailySummary(
        date=date,
        opening_balance=opening_balance,
        closing_balance=opening_balance + total_incoming - total_outgoing,
        total_incoming=total_incoming,
        total_outgoing=total_outgoing,
        net_movement=total_incoming - total_outgoing,
        transactions_count=len(entries),
    )


def summarize_by_channel(
    entries: Iterable[DailyLedgerEntry],
) -> list[ChannelDaySummary]:
    """Per-channel totals, busiest net inflow first. Idle channels are left out."""
    totals: dict[str, dict] = {}
    for entry in entries:
        name = entry.payment_channel_name or entry.payment_method or "Other"
        bucket = totals.setdefault(
            name, {"incoming": ZERO, "outgoing": ZERO, "count": 0}
        )
        if entry.type == EntryType.INCOMING:
            bucket["incoming"] += entry.amount
        else:
            bucket["outgoing"] += entry.amount
        bucket["count"] += 1

    summaries = [
        ChannelDaySummary(
            payment_channel_name=name,
            total_incoming=t["incoming"],
            total_outgoing=t["outgoing"],
            net_movement=t["incoming"] - t["outgoing"],
            transactions_count=t["count"],
        )
        for name, t in totals.items()
        if t["incoming"] > 0 or t["outgoing"] > 0
    ]
    summaries.sort(key=lambda s: s.net_movement, reverse=True)
    return summaries


def merge_day(
    date: str,
    ledger_entries: Iterable[DailyLedgerEntry],
    vendor_payments: Iterable[VendorPaymentRecord],
    opening_balance: Decimal,
    customer_id: int | None = None,
    channel_ids: Iterable[int] | None = None,
    channels: Iterable[PaymentChannelRecord] = (),
    search: str | None = None,
    unavailable_sources: Iterable[str] = (),
) -> DailyLedgerView:
    """
    Build the daily view from already-fetched sources.

    The summary covers every entry that survives the customer and
    channel filters. The search term only narrows what is listed.
    """
    vendor_entries = [vendor_payment_to_entry(p) for p in vendor_payments]
    merged = deduplicate(vendor_entries + filter_cash_flow(ledger_entries))
    day_entries = sort_by_time(
        apply_filters(merged, customer_id, channel_ids, channels)
    )

    return DailyLedgerView(
        date=date,
        entries=search_entries(day_entries, search),
        summary=summarize(day_entries, date, opening_balance),
        channel_summaries=summarize_by_channel(day_entries),
        unavailable_sources=list(unavailable_sources),
    )
