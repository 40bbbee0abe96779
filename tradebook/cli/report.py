"""CLI report — prints portfolio statistics and exposure to the console."""

from typing import Optional

from tradebook.analytics.engine import PortfolioAnalysis
from tradebook.analytics.stats import TradeStats


def _pct(value: Optional[float]) -> str:
    return f"{value:+.2f}%" if value is not None else "N/A"


def _ratio(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "N/A"


def format_stats(stats: TradeStats, title: str = "Performance") -> list[str]:
    """Format one :class:`TradeStats` block as console lines."""
    return [
        f"──────────────── {title} ────────────────",
        f"  Trades:          {stats.total_trades} "
        f"({stats.winning_trades}W / {stats.losing_trades}L / {stats.break_even_trades}BE)",
        f"  Batting Avg:     {stats.batting_average * 100:.1f}%",
        f"  Avg Win:         {_pct(stats.average_win_percent)}",
        f"  Avg Loss:        {_pct(stats.average_loss_percent)}",
        f"  Win/Loss:        {_ratio(stats.win_loss_ratio)}",
        f"  Adj. Win/Loss:   {_ratio(stats.adjusted_win_loss_ratio)}",
        f"  Avg R:           {_ratio(stats.average_r_ratio)}",
        f"  Profit Factor:   {_ratio(stats.profit_factor)}",
        f"  Expectancy:      {_pct(stats.expectancy)}",
        f"  Max Gain/Loss:   {_pct(stats.max_gain_percent)} / {_pct(stats.max_loss_percent)}",
        f"  Total P&L:       ${stats.total_profit_loss:,.2f} ({_pct(stats.total_profit_loss_percent)})",
    ]


def print_report(analysis: PortfolioAnalysis) -> str:
    """Format and print a full analysis pass.

    Returns:
        The formatted string (also printed to stdout).
    """
    lines = format_stats(analysis.stats)
    if analysis.stats.normalized is not None:
        lines += format_stats(analysis.stats.normalized, title="Normalized")

    if analysis.exposure is not None:
        exp = analysis.exposure
        lines.append("──────────────── Exposure ────────────────")
        for bucket in exp.buckets:
            flag = "  OVERFLOW" if bucket.overflow else ""
            lines.append(
                f"  Bucket {bucket.id}:        {bucket.occupied_percent:6.1f}% "
                f"({len(bucket.trade_ids)} trade(s)){flag}"
            )
        lines.append(
            f"  Total:           {exp.total_exposure_percent:.1f}% of "
            f"{exp.target_exposure_percent:.0f}% target ({exp.risk.level})"
        )

    for feature, reason in sorted(analysis.unavailable.items()):
        lines.append(f"  {feature} unavailable: {reason}")
    for rejected in analysis.rejected:
        lines.append(f"  Rejected {rejected.trade_id}: {rejected.reason}")

    lines.append("──────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output
