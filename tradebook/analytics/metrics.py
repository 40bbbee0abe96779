"""Per-trade metrics — pure math, no I/O.

Derives realized / unrealized P&L, R-ratio, risk and holding period from a
single trade snapshot.  Every value is recomputed from the raw entry, exit
and stop data on each call.

Conventions:
  - Percent values are expressed in percent units (``20.0`` means 20 %).
  - P&L fields are ``None`` when there is nothing to measure yet (no exits
    and no current price), which is distinct from a break-even ``0.0``.
  - R-ratios are ``None`` when the initial risk is zero.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from tradebook.analytics.errors import DataIntegrityError
from tradebook.models.trade import Trade


@dataclass(frozen=True)
class TradeMetrics:
    """Computed projection of one trade."""

    trade_id: str
    status: str
    shares: float
    exited_shares: float
    remaining_shares: float
    initial_risk_amount: float
    risk_amount: float
    risk_percent: float
    realized_pnl_amount: Optional[float]
    realized_pnl_percent: Optional[float]
    unrealized_pnl_amount: Optional[float]
    unrealized_pnl_percent: Optional[float]
    profit_loss_amount: Optional[float]
    profit_loss_percent: Optional[float]
    average_exit_price: Optional[float]
    r_ratio: Optional[float]
    realized_r_ratio: Optional[float]
    days_held: int


@dataclass(frozen=True)
class ExitDetail:
    """One exit with its share of the position and its P&L."""

    date: date
    price: float
    shares: float
    reason: Optional[str]
    percent_of_total: float
    percent_of_remaining: float
    percent_change: float
    profit_loss: float


# ── Validation ───────────────────────────────────────────────────────────


def validate_trade(trade: Trade) -> None:
    """Check the journal invariants for *trade*.

    Raises:
        DataIntegrityError: On non-positive share counts or prices, exits
            exceeding the position, or exits / stop changes dated before
            entry.
    """
    if trade.shares <= 0:
        raise DataIntegrityError(
            f"shares must be positive, got {trade.shares}", trade.id,
        )
    if trade.entry_price <= 0:
        raise DataIntegrityError(
            f"entry_price must be positive, got {trade.entry_price}", trade.id,
        )
    if trade.type not in ("long", "short"):
        raise DataIntegrityError(
            f"type must be 'long' or 'short', got {trade.type!r}", trade.id,
        )
    for ex in trade.exits:
        if ex.shares <= 0:
            raise DataIntegrityError(
                f"exit shares must be positive, got {ex.shares}", trade.id,
            )
        if ex.date < trade.entry_date:
            raise DataIntegrityError(
                f"exit dated {ex.date} precedes entry {trade.entry_date}",
                trade.id,
            )
    if trade.exited_shares > trade.shares:
        raise DataIntegrityError(
            f"exited shares {trade.exited_shares} exceed entry shares "
            f"{trade.shares}",
            trade.id,
        )
    for change in trade.modified_stops:
        if change.date < trade.entry_date:
            raise DataIntegrityError(
                f"stop change dated {change.date} precedes entry "
                f"{trade.entry_date}",
                trade.id,
            )


# ── Metrics ──────────────────────────────────────────────────────────────


def calculate_metrics(trade: Trade, as_of: Optional[date] = None) -> TradeMetrics:
    """Compute the metrics projection of *trade*.

    Args:
        trade: Trade snapshot.
        as_of: Reference date for trades that are still open.  Defaults to
            today; pass it explicitly for reproducible passes.

    Raises:
        DataIntegrityError: If the trade fails :func:`validate_trade`.
    """
    validate_trade(trade)

    entry = trade.entry_price
    sign = trade.direction_sign
    exited = trade.exited_shares
    remaining = trade.remaining_shares
    status = trade.status

    initial_risk = abs(entry - trade.initial_stop_loss) * trade.shares
    stop_distance = abs(entry - trade.current_stop)
    risk_amount = stop_distance * trade.shares
    risk_percent = stop_distance / entry * 100.0

    realized: Optional[float] = None
    realized_pct: Optional[float] = None
    avg_exit: Optional[float] = None
    if trade.exits:
        realized = sum((ex.price - entry) * ex.shares * sign for ex in trade.exits)
        realized_pct = realized / (entry * exited) * 100.0
        avg_exit = sum(ex.price * ex.shares for ex in trade.exits) / exited

    unrealized: Optional[float] = None
    unrealized_pct: Optional[float] = None
    if status != "closed" and trade.current_price is not None and remaining > 0:
        unrealized = (trade.current_price - entry) * remaining * sign
        unrealized_pct = unrealized / (entry * remaining) * 100.0

    total: Optional[float] = None
    total_pct: Optional[float] = None
    if realized is not None or unrealized is not None:
        total = (realized or 0.0) + (unrealized or 0.0)
        covered = (exited if realized is not None else 0.0) + (
            remaining if unrealized is not None else 0.0
        )
        total_pct = total / (entry * covered) * 100.0

    return TradeMetrics(
        trade_id=trade.id,
        status=status,
        shares=trade.shares,
        exited_shares=exited,
        remaining_shares=remaining,
        initial_risk_amount=initial_risk,
        risk_amount=risk_amount,
        risk_percent=risk_percent,
        realized_pnl_amount=realized,
        realized_pnl_percent=realized_pct,
        unrealized_pnl_amount=unrealized,
        unrealized_pnl_percent=unrealized_pct,
        profit_loss_amount=total,
        profit_loss_percent=total_pct,
        average_exit_price=avg_exit,
        r_ratio=_safe_ratio(total, initial_risk),
        realized_r_ratio=_safe_ratio(realized, initial_risk),
        days_held=days_held(trade, as_of),
    )


def days_held(trade: Trade, as_of: Optional[date] = None) -> int:
    """Whole days from entry to the final exit, or to *as_of* while open."""
    if trade.status == "closed":
        end = trade.last_exit_date
    else:
        end = as_of if as_of is not None else date.today()
    return (end - trade.entry_date).days


def exit_breakdown(trade: Trade) -> list[ExitDetail]:
    """Per-exit breakdown of *trade*, oldest exit first.

    ``percent_of_remaining`` is measured against the shares still held just
    before that exit; ``percent_change`` is direction-adjusted so a short
    covered below entry shows a positive change.

    Raises:
        DataIntegrityError: If the trade fails :func:`validate_trade`.
    """
    validate_trade(trade)
    details: list[ExitDetail] = []
    remaining = trade.shares
    entry = trade.entry_price
    sign = trade.direction_sign
    for ex in sorted(trade.exits, key=lambda e: e.date):
        change = ex.price - entry
        details.append(
            ExitDetail(
                date=ex.date,
                price=ex.price,
                shares=ex.shares,
                reason=ex.reason,
                percent_of_total=ex.shares / trade.shares * 100.0,
                percent_of_remaining=(
                    ex.shares / remaining * 100.0 if remaining > 0 else 0.0
                ),
                percent_change=change / entry * 100.0 * sign,
                profit_loss=change * ex.shares * sign,
            )
        )
        remaining -= ex.shares
    return details


# ── Helpers ──────────────────────────────────────────────────────────────


def _safe_ratio(numerator: Optional[float], risk: float) -> Optional[float]:
    if numerator is None or risk == 0:
        return None
    return numerator / risk
