"""
Daily ledger service.

Loads one day of cash movement and handles the manual entries a
user can add, edit and delete.

Loading a day reads two independent sources: the centralized
ledger table and the vendor payments table. They are fetched in
parallel, each on its own session, and both must finish before the
day is merged. A source that fails is logged and treated as empty,
so one broken table never blanks the whole day. A load that runs
past the timeout raises LedgerTimeoutError, which is safe to retry.

Writes follow the usual rule: the service flushes, the caller
commits or rolls back. Change events are held back until the caller
has committed and calls publish_committed(); a consumer that reloads
the day on an event must be able to see the change.
"""

import json
import logging
import time as clock
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FetchTimeout
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from daily_ledger.categories import (
    CASH_FLOW_CATEGORIES,
    PAYMENT_RECEIVED,
    STAFF_SALARY,
    VENDOR_PAYMENT,
    auto_category,
    is_salary_category,
    is_vendor_category,
)
from daily_ledger.config import get_settings
from daily_ledger.events import (
    ENTRY_CREATED,
    ENTRY_DELETED,
    ENTRY_UPDATED,
    LedgerEvent,
    LedgerEventHub,
)
from daily_ledger.exceptions import (
    EntryNotFoundError,
    EntryPermissionError,
    LedgerTimeoutError,
    LedgerValidationError,
    LedgerWriteError,
    UpstreamFetchError,
)
from daily_ledger.models.audit_log import AuditLog
from daily_ledger.models.enums import EntryType, PaymentType
from daily_ledger.models.ledger_entry import LedgerEntry
from daily_ledger.schemas.ledger import (
    CustomerPaymentCreate,
    DailyLedgerEntry,
    DailyLedgerView,
    ManualEntryCreate,
    ManualEntryUpdate,
)
from daily_ledger.schemas.payment_channel import (
    PaymentChannelRecord,
    ReconcileResponse,
)
from daily_ledger.services.aggregator import VENDOR_PAYMENT_ID_PREFIX, merge_day
from daily_ledger.services.channel_totals import ChannelTotalsReconciler
from daily_ledger.services.ledger_repository import (
    LedgerRepository,
    to_daily_entry,
)

logger = logging.getLogger(__name__)


LEDGER_SOURCE = "ledger_entries"
VENDOR_SOURCE = "vendor_payments"
CHANNEL_SOURCE = "payment_channels"

CREATED_BY = "daily_ledger_manual"


def _third_word(description: str, default: str) -> str:
    words = description.split(" ")
    return words[2] if len(words) > 2 and words[2] else default


class DailyLedgerService:
    """
    Entry point for everything the daily ledger does.

    read_session_factory opens the sessions used by the parallel
    reads; by default it is bound to the same engine as db.
    """

    def __init__(
        self,
        db: Session,
        events: LedgerEventHub | None = None,
        read_session_factory: Callable[[], Session] | None = None,
        opening_balance: Decimal | None = None,
        fetch_timeout: float | None = None,
        require_channel: bool | None = None,
    ):
        settings = get_settings()
        self.db = db
        self.repository = LedgerRepository(db)
        self.channel_totals = ChannelTotalsReconciler(db)
        self.events = events
        self._pending_events: list[LedgerEvent] = []
        self.read_session_factory = read_session_factory or sessionmaker(
            bind=db.get_bind(),
            autocommit=False,
            autoflush=False,
        )
        self.opening_balance = (
            settings.OPENING_BALANCE
            if opening_balance is None else opening_balance
        )
        self.fetch_timeout = (
            settings.LEDGER_FETCH_TIMEOUT_SECONDS
            if fetch_timeout is None else fetch_timeout
        )
        self.require_channel = (
            settings.REQUIRE_PAYMENT_CHANNEL
            if require_channel is None else require_channel
        )

    # --- Loading a day ---

    def load_day(
        self,
        date: str,
        customer_id: int | None = None,
        channel_ids: Iterable[int] | None = None,
        search: str | None = None,
    ) -> DailyLedgerView:
        """
        Merge everything that moved cash on the given date.

        Raises LedgerTimeoutError if the sources do not answer in
        time. Any other source failure only shows up in
        unavailable_sources.
        """
        channel_ids = list(channel_ids or [])
        fetches = {
            LEDGER_SOURCE: lambda repo: repo.get_daily_ledger_entries(
                date, customer_id
            ),
            VENDOR_SOURCE: lambda repo: repo.get_vendor_payments(date),
        }
        if channel_ids:
            fetches[CHANNEL_SOURCE] = lambda repo: repo.get_payment_channels()

        results, unavailable = self._fetch_all(date, fetches)

        view = merge_day(
            date=date,
            ledger_entries=results[LEDGER_SOURCE],
            vendor_payments=results[VENDOR_SOURCE],
            opening_balance=self.opening_balance,
            customer_id=customer_id,
            channel_ids=channel_ids,
            channels=results.get(CHANNEL_SOURCE, []),
            search=search,
            unavailable_sources=unavailable,
        )

        manual = sum(1 for e in view.entries if e.is_manual)
        logger.info(
            "Loaded daily ledger for %s: %d entries (%d manual, %d system)",
            date, len(view.entries), manual, len(view.entries) - manual,
        )
        return view

    def _read(self, fetch: Callable[[LedgerRepository], list]) -> list:
        with self.read_session_factory() as session:
            return fetch(LedgerRepository(session))

    def _fetch_all(
        self, date: str, fetches: dict[str, Callable]
    ) -> tuple[dict[str, list], list[str]]:
        """Run every fetch in parallel and wait for all of them."""
        pool = ThreadPoolExecutor(
            max_workers=len(fetches), thread_name_prefix="daily-ledger"
        )
        try:
            futures: dict[str, Future] = {
                name: pool.submit(self._read, fetch)
                for name, fetch in fetches.items()
            }
            deadline = clock.monotonic() + self.fetch_timeout

            results: dict[str, list] = {}
            unavailable: list[str] = []
            for name, future in futures.items():
                remaining = max(0.0, deadline - clock.monotonic())
                try:
                    results[name] = future.result(timeout=remaining)
                except FetchTimeout:
                    raise LedgerTimeoutError(
                        f"Loading the ledger for {date} timed out after "
                        f"{self.fetch_timeout}s ({name} did not answer)"
                    ) from None
                except Exception as e:
                    logger.exception(
                        "%s", UpstreamFetchError(name, e)
                    )
                    results[name] = []
                    unavailable.append(name)
            return results, unavailable
        finally:
            # Don't block on a hung fetch
            pool.shutdown(wait=False, cancel_futures=True)

    # --- Manual entries ---

    def create_manual_entry(self, request: ManualEntryCreate) -> DailyLedgerEntry:
        """
        Record a transaction typed in by a user.

        Where it goes depends on direction, customer and category:
        - incoming from a customer: recorded as a customer payment,
          optionally allocated to one of their open invoices
        - outgoing to a vendor or supplier: vendor payment entry
        - outgoing salary or staff: staff salary entry
        - anything else: general business entry

        Validation happens before anything is written. A failed write
        raises LedgerWriteError. The channel running total is updated
        afterwards; if that fails the entry still stands.
        """
        description = (request.description or "").strip()
        if not description:
            raise LedgerValidationError("Description is required")
        if request.amount is None or request.amount <= 0:
            raise LedgerValidationError("Amount must be greater than zero")

        customer = None
        if request.customer_id:
            customer = self.repository.get_customer(request.customer_id)
            if customer is None:
                raise LedgerValidationError(
                    f"Customer {request.customer_id} not found"
                )

        channel_name = request.payment_channel_name
        payment_method = request.payment_method
        if request.payment_channel_id:
            channel = self.repository.get_payment_channel(
                request.payment_channel_id
            )
            if channel is None or not channel.is_active:
                raise LedgerValidationError(
                    f"Payment channel {request.payment_channel_id} "
                    f"not found or inactive"
                )
            channel_name = channel_name or channel.name
            payment_method = payment_method or channel.type
        elif self.require_channel:
            raise LedgerValidationError("A payment channel is required")

        category = request.category or auto_category(
            request.type, description, request.customer_id
        )
        is_customer_payment = (
            customer is not None and request.type == EntryType.INCOMING
        )

        if request.invoice_id:
            if not is_customer_payment:
                raise LedgerValidationError(
                    "Only incoming customer payments can be allocated "
                    "to an invoice"
                )
            invoice = self.repository.get_invoice(request.invoice_id)
            if invoice is None or invoice.customer_id != customer.id:
                raise LedgerValidationError(
                    f"Invoice {request.invoice_id} not found for "
                    f"customer {customer.id}"
                )
            if invoice.remaining_balance <= 0:
                raise LedgerValidationError(
                    f"Invoice {invoice.bill_number} is already paid"
                )

        common = dict(
            date=request.date,
            time=datetime.now().strftime("%H:%M:%S"),
            entry_type=request.type,
            description=description,
            amount=request.amount,
            payment_method=payment_method,
            payment_channel_id=request.payment_channel_id,
            payment_channel_name=channel_name,
            created_by=CREATED_BY,
        )

        try:
            if is_customer_payment:
                entry = self._record_customer_payment(
                    request, common, category
                )
            elif request.type == EntryType.OUTGOING and is_vendor_category(category):
                entry = self.repository.create_daily_ledger_entry(
                    **common,
                    category=VENDOR_PAYMENT,
                    customer_name=f"Vendor: {_third_word(description, 'Vendor')}",
                    reference_type="vendor_payment_manual",
                    notes=request.notes or "Manual vendor payment entry",
                    is_manual=True,
                )
            elif request.type == EntryType.OUTGOING and is_salary_category(category):
                entry = self.repository.create_daily_ledger_entry(
                    **common,
                    category=STAFF_SALARY,
                    customer_name=f"Staff: {_third_word(description, 'Staff')}",
                    reference_type="salary_payment_manual",
                    notes=request.notes or "Manual staff salary entry",
                    is_manual=True,
                )
            elif customer is not None:
                entry = self.repository.create_daily_ledger_entry(
                    **common,
                    category=category,
                    customer_id=customer.id,
                    customer_name=customer.name,
                    reference_type="customer_transaction",
                    notes=request.notes or "Customer transaction",
                    is_manual=True,
                )
            else:
                entry = self.repository.create_daily_ledger_entry(
                    **common,
                    category=category,
                    reference_type="manual_transaction",
                    notes=request.notes or "Manual transaction",
                    is_manual=True,
                )

            outbox = self.channel_totals.enqueue(entry)
            self._audit("LEDGER_ENTRY_CREATED", entry)
        except SQLAlchemyError as e:
            logger.error("Failed to record %s transaction: %s", request.type.value, e)
            raise LedgerWriteError(f"Failed to record transaction: {e}") from e

        logger.info(
            "Recorded %s %s of %s on %s (entry %s)",
            entry.category, entry.entry_type.value, entry.amount,
            entry.date, entry.id,
        )

        if outbox is not None:
            try:
                self.channel_totals.apply_pending([outbox.id])
            except SQLAlchemyError as e:
                logger.warning(
                    "Channel total update for ledger entry %s left pending: %s",
                    entry.id, e,
                )

        self._queue_event(ENTRY_CREATED, entry)
        return to_daily_entry(entry)

    def _record_customer_payment(
        self, request: ManualEntryCreate, common: dict, category: str
    ) -> LedgerEntry:
        # The payment's ledger row is a system entry, so it has to carry
        # a cash-flow category or the daily view would drop it.
        if category not in CASH_FLOW_CATEGORIES:
            category = PAYMENT_RECEIVED
        payment_type = (
            PaymentType.ADVANCE_PAYMENT
            if "advance" in category.lower()
            else PaymentType.BILL_PAYMENT
        )

        _, entry = self.repository.record_payment(
            CustomerPaymentCreate(
                customer_id=request.customer_id,
                amount=request.amount,
                payment_type=payment_type.value,
                payment_method=common["payment_method"],
                payment_channel_id=common["payment_channel_id"],
                payment_channel_name=common["payment_channel_name"],
                reference=common["description"],
                notes=request.notes or "",
                date=common["date"],
                time=common["time"],
                category=category,
                created_by=CREATED_BY,
            ),
            invoice_id=request.invoice_id,
        )
        return entry

    def edit_manual_entry(
        self,
        entry_id: str,
        changes: ManualEntryUpdate,
        date: str | None = None,
    ) -> DailyLedgerEntry:
        """
        Change a manual entry.

        When date is given the entry must belong to that day.
        System entries raise EntryPermissionError.
        """
        row = self._manual_entry(entry_id, date, action="edited")

        patch = changes.model_dump(exclude_unset=True)
        if "description" in patch:
            patch["description"] = (patch["description"] or "").strip()
            if not patch["description"]:
                raise LedgerValidationError("Description is required")
        if "amount" in patch and (patch["amount"] is None or patch["amount"] <= 0):
            raise LedgerValidationError("Amount must be greater than zero")
        if "category" in patch and not patch["category"]:
            raise LedgerValidationError("Category cannot be empty")

        if not patch:
            return to_daily_entry(row)

        try:
            self.repository.update_manual_entry(row.id, patch)
            self.db.flush()
            self.db.refresh(row)
            self._audit("LEDGER_ENTRY_UPDATED", row, changed=sorted(patch))
        except SQLAlchemyError as e:
            logger.error("Failed to update ledger entry %s: %s", entry_id, e)
            raise LedgerWriteError(f"Failed to update transaction: {e}") from e

        logger.info("Updated ledger entry %s (%s)", row.id, ", ".join(sorted(patch)))
        self._queue_event(ENTRY_UPDATED, row)
        return to_daily_entry(row)

    def delete_manual_entry(
        self, entry_id: str, date: str | None = None
    ) -> DailyLedgerEntry:
        """Hard-delete a manual entry and return what was removed."""
        row = self._manual_entry(entry_id, date, action="deleted")
        removed = to_daily_entry(row)

        try:
            self._audit("LEDGER_ENTRY_DELETED", row)
            self.repository.delete_manual_entry(row.id)
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete ledger entry %s: %s", entry_id, e)
            raise LedgerWriteError(f"Failed to delete transaction: {e}") from e

        logger.info("Deleted ledger entry %s", removed.id)
        self._queue_event(ENTRY_DELETED, removed)
        return removed

    def _manual_entry(
        self, entry_id: str, date: str | None, action: str
    ) -> LedgerEntry:
        """
        Look up an entry that is about to be changed.

        Raises EntryNotFoundError for unknown ids (or ids from another
        day) and EntryPermissionError for system entries.
        """
        entry_id = str(entry_id)
        if entry_id.startswith(VENDOR_PAYMENT_ID_PREFIX):
            payment_id = entry_id[len(VENDOR_PAYMENT_ID_PREFIX):]
            payment = (
                self.repository.get_vendor_payment(int(payment_id))
                if payment_id.isdigit() else None
            )
            if payment is None or (date and payment.date != date):
                raise EntryNotFoundError(f"Entry {entry_id} not found")
            raise EntryPermissionError(
                f"System generated entries cannot be {action}"
            )

        row = (
            self.repository.get_entry(int(entry_id))
            if entry_id.isdigit() else None
        )
        if row is None or (date and row.date != date):
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        if not row.is_manual:
            raise EntryPermissionError(
                f"System generated entries cannot be {action}"
            )
        return row

    # --- Payment channels ---

    def list_payment_channels(self) -> list[PaymentChannelRecord]:
        return self.repository.get_payment_channels()

    def reconcile_channel_totals(self) -> ReconcileResponse:
        """Retry every pending channel running-total update."""
        result = self.channel_totals.apply_pending()
        logger.info(
            "Channel totals reconciled: %d applied, %d failed, %d pending",
            result.applied, result.failed, result.pending,
        )
        return result

    # --- Helpers ---

    def _audit(self, event_type: str, entry: LedgerEntry, **extra) -> None:
        details = {
            "date": entry.date,
            "type": entry.entry_type.value,
            "category": entry.category,
            "amount": str(entry.amount),
            **extra,
        }
        self.db.add(AuditLog(
            event_type=event_type,
            entity_id=str(entry.id),
            details=json.dumps(details),
        ))
        self.db.flush()

    def _queue_event(self, kind: str, entry) -> None:
        if self.events is None:
            return
        if isinstance(entry, LedgerEntry):
            entry = to_daily_entry(entry)
        self._pending_events.append(LedgerEvent(
            kind=kind,
            date=entry.date,
            entry_id=entry.id,
            entry_type=entry.type,
            amount=entry.amount,
            category=entry.category,
        ))

    # --- Change events ---

    def publish_committed(self) -> int:
        """
        Deliver the events queued by this service's writes.

        Call only after the session was committed. Returns how many
        events went out.
        """
        events, self._pending_events = self._pending_events, []
        for event in events:
            self.events.publish(event)
        return len(events)

    def discard_events(self) -> None:
        """Drop queued events after a rollback."""
        self._pending_events = []
