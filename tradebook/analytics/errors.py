"""Analytics error taxonomy.

Undefined ratios (zero risk, zero losses, nothing to average) are not
errors: they are returned as ``None``.
"""

from typing import Optional


class DataIntegrityError(ValueError):
    """A trade record violates the journal invariants.

    Raised per trade; an analysis pass rejects the trade and carries on.
    """

    def __init__(self, message: str, trade_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.trade_id = trade_id


class ConfigurationError(ValueError):
    """Equity, target risk or bucket settings are missing or non-positive."""
