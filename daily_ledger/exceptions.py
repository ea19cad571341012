"""
Domain errors for the daily ledger.

Services raise these; the API layer maps them to status codes.
Validation, not-found and permission errors are also ValueErrors,
so callers that only know about ValueError still catch them.
"""


class DailyLedgerError(Exception):
    """Base class for every daily ledger error."""


class LedgerValidationError(DailyLedgerError, ValueError):
    """Input rejected before anything was written."""


class EntryNotFoundError(DailyLedgerError, ValueError):
    """The referenced entry does not exist (or is not on the given day)."""


class EntryPermissionError(DailyLedgerError, ValueError):
    """A system-generated entry was targeted by an edit or delete."""


class UpstreamFetchError(DailyLedgerError):
    """
    A read source failed while loading a day.

    Never propagated out of load_day: the source is treated as
    empty and reported in DailyLedgerView.unavailable_sources.
    """

    def __init__(self, source: str, cause: BaseException):
        super().__init__(f"{source} fetch failed: {cause}")
        self.source = source
        self.cause = cause


class LedgerTimeoutError(DailyLedgerError):
    """Loading a day took longer than the configured timeout. Retryable."""

    retryable = True


class LedgerWriteError(DailyLedgerError):
    """The primary write failed. Nothing was committed."""


class SecondaryIndexError(DailyLedgerError):
    """Applying a payment-channel running-total update failed."""
