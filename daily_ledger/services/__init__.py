"""Business logic services."""

from daily_ledger.services.ledger_repository import LedgerRepository
from daily_ledger.services.channel_totals import ChannelTotalsReconciler
from daily_ledger.services.daily_ledger_service import DailyLedgerService

__all__ = ["LedgerRepository", "ChannelTotalsReconciler", "DailyLedgerService"]
