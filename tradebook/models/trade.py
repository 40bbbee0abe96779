"""Journal trade records — typed, immutable snapshots of a position's lifecycle.

Derived fields (status, current stop, exited shares) are properties computed
from the raw entry / exit / stop data, never stored.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from tradebook.models.catalog import Ticker


@dataclass(frozen=True)
class StopChange:
    """A stop-loss modification after entry."""

    price: float
    date: date
    notes: Optional[str] = None


@dataclass(frozen=True)
class TradeExit:
    """A full or partial exit from a position."""

    price: float
    shares: float
    date: date
    reason: Optional[str] = None  # "target", "stop", "technical", "fundamental", "other"
    notes: Optional[str] = None


@dataclass(frozen=True)
class Trade:
    """One position from entry to final exit."""

    id: str
    ticker: Union[Ticker, str]
    type: str  # "long" or "short"
    entry_date: date
    entry_price: float
    shares: float
    initial_stop_loss: float
    modified_stops: tuple[StopChange, ...] = field(default_factory=tuple)
    exits: tuple[TradeExit, ...] = field(default_factory=tuple)
    current_price: Optional[float] = None
    notes: Optional[str] = None

    @property
    def ticker_id(self) -> str:
        if isinstance(self.ticker, Ticker):
            return self.ticker.id
        return self.ticker

    @property
    def symbol(self) -> Optional[str]:
        if isinstance(self.ticker, Ticker):
            return self.ticker.symbol
        return None

    @property
    def direction_sign(self) -> int:
        """``+1`` for long trades, ``-1`` for short trades."""
        return -1 if self.type == "short" else 1

    @property
    def exited_shares(self) -> float:
        return sum(e.shares for e in self.exits)

    @property
    def remaining_shares(self) -> float:
        return max(0.0, self.shares - self.exited_shares)

    @property
    def status(self) -> str:
        """``"open"``, ``"partial"`` or ``"closed"``, derived from exits."""
        if not self.exits:
            return "open"
        if self.exited_shares >= self.shares:
            return "closed"
        return "partial"

    @property
    def current_stop(self) -> float:
        """Latest stop modification, or the initial stop when none exist."""
        stop = self.initial_stop_loss
        for change in self.modified_stops:
            stop = change.price
        return stop

    @property
    def last_exit_date(self) -> Optional[date]:
        if not self.exits:
            return None
        return max(e.date for e in self.exits)
