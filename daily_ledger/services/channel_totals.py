"""
Payment channel running totals.

Channel totals are a secondary index over the ledger. Each ledger
write that names a channel also queues a ChannelTotalOutbox row in
the same transaction; this reconciler applies queued rows to the
channel and its per-day totals.

Between the ledger write and a successful apply, the ledger and
the channel totals disagree. That window is accepted: a failed
apply is logged, left pending and retried later, and never undoes
the ledger write. A row is applied at most once.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from daily_ledger.exceptions import SecondaryIndexError
from daily_ledger.models.enums import EntryType
from daily_ledger.models.ledger_entry import LedgerEntry
from daily_ledger.models.payment_channel import (
    ChannelTotalOutbox,
    PaymentChannel,
    PaymentChannelDailyLedger,
)
from daily_ledger.schemas.payment_channel import ReconcileResponse

logger = logging.getLogger(__name__)


class ChannelTotalsReconciler:

    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, entry: LedgerEntry) -> ChannelTotalOutbox | None:
        """Queue the running-total update for a freshly written entry."""
        if not entry.payment_channel_id:
            return None

        row = ChannelTotalOutbox(
            ledger_entry_id=entry.id,
            payment_channel_id=entry.payment_channel_id,
            entry_type=entry.entry_type,
            amount=entry.amount,
            date=entry.date,
            attempts=0,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def apply_pending(
        self, outbox_ids: list[int] | None = None
    ) -> ReconcileResponse:
        """
        Apply queued updates, each inside its own SAVEPOINT.

        A failing row is rolled back to its savepoint, marked with
        the error and left pending. Other rows and the surrounding
        transaction are unaffected.
        """
        query = (
            select(ChannelTotalOutbox)
            .where(ChannelTotalOutbox.applied_at.is_(None))
            .order_by(ChannelTotalOutbox.id)
        )
        if outbox_ids is not None:
            query = query.where(ChannelTotalOutbox.id.in_(outbox_ids))
        rows = self.db.execute(query).scalars().all()

        applied = failed = 0
        for row in rows:
            try:
                with self.db.begin_nested():
                    self._apply(row)
                    row.applied_at = datetime.utcnow()
                applied += 1
            except (SecondaryIndexError, SQLAlchemyError) as e:
                failed += 1
                logger.warning(
                    "Channel total update for ledger entry %s failed "
                    "(attempt %s): %s",
                    row.ledger_entry_id, (row.attempts or 0) + 1, e,
                )
                row.attempts = (row.attempts or 0) + 1
                row.last_error = str(e)[:500]
                self.db.flush()

        return ReconcileResponse(
            applied=applied,
            failed=failed,
            pending=self.pending_count(),
        )

    def pending_count(self) -> int:
        return self.db.execute(
            select(func.count(ChannelTotalOutbox.id)).where(
                ChannelTotalOutbox.applied_at.is_(None)
            )
        ).scalar_one()

    def _apply(self, row: ChannelTotalOutbox) -> None:
        channel = self.db.get(PaymentChannel, row.payment_channel_id)
        if channel is None:
            raise SecondaryIndexError(
                f"Payment channel {row.payment_channel_id} not found"
            )

        if row.entry_type == EntryType.INCOMING:
            channel.total_incoming = (
                (channel.total_incoming or Decimal("0")) + row.amount
            )
        else:
            channel.total_outgoing = (
                (channel.total_outgoing or Decimal("0")) + row.amount
            )
        channel.updated_at = datetime.utcnow()

        daily = self.db.execute(
            select(PaymentChannelDailyLedger).where(
                PaymentChannelDailyLedger.payment_channel_id == channel.id,
                PaymentChannelDailyLedger.date == row.date,
            )
        ).scalar_one_or_none()
        if daily is None:
            daily = PaymentChannelDailyLedger(
                payment_channel_id=channel.id,
                date=row.date,
                total_amount=Decimal("0"),
                transaction_count=0,
            )
            self.db.add(daily)

        # Per-day totals count movement in either direction
        daily.total_amount += row.amount
        daily.transaction_count += 1
        self.db.flush()
