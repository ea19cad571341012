"""
Ledger change notifications.

Consumers that show ledger data (other views, caches) register a
callback on a LedgerEventHub and reload when told something
changed. The hub belongs to whoever wires the service to its
consumers; there is no module-level instance.

Every subscribe() returns an unsubscribe function. Call it when
the consumer goes away, or the hub keeps the callback alive.
"""

import logging
from collections.abc import Callable
from decimal import Decimal

from pydantic import BaseModel

from daily_ledger.models.enums import EntryType

logger = logging.getLogger(__name__)


ENTRY_CREATED = "entry_created"
ENTRY_UPDATED = "entry_updated"
ENTRY_DELETED = "entry_deleted"


class LedgerEvent(BaseModel):
    kind: str
    date: str
    entry_id: str
    entry_type: EntryType | None = None
    amount: Decimal | None = None
    category: str | None = None

    model_config = {"frozen": True}


LedgerCallback = Callable[[LedgerEvent], None]


class LedgerEventHub:

    def __init__(self):
        self._subscribers: list[LedgerCallback] = []

    def subscribe(self, callback: LedgerCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            # Safe to call twice
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: LedgerEvent) -> None:
        """
        Deliver an event to every subscriber.

        A subscriber that raises is logged and skipped; the others
        still get the event and the publisher never sees the error.
        """
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Ledger subscriber %r failed on %s", callback, event.kind
                )
