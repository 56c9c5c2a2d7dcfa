"""Error taxonomy for the marketplace core.

"No match available" is not an error: the matching engine returns None.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base error for the marketplace core."""


class ValidationError(MarketplaceError):
    """Job requirements rejected before enqueue."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid {field}: {message}")
        self.field = field


class UnauthorizedError(MarketplaceError):
    """Result reported by a host that is not on record for the job."""


class JobStateError(MarketplaceError):
    """Operation not allowed in the job's current state."""


class DispatchFailure(MarketplaceError):
    """Host rejected the job or could not be reached."""


class LedgerError(MarketplaceError):
    """Ledger transaction (e.g. escrow) failed."""


class OracleUnavailable(MarketplaceError):
    """Benchmark oracle could not be queried."""
