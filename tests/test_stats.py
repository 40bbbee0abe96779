"""Tests for the statistics aggregator.

Covers partitioning, ratio formulas, undefined-value handling, the empty
portfolio boundary, the normalized view and idempotence.
"""

import json
from datetime import date, timedelta

import pytest

from tradebook.analytics.metrics import calculate_metrics
from tradebook.analytics.models import TradeAnalysis
from tradebook.analytics.normalization import normalize
from tradebook.analytics.stats import calculate_stats, stats_to_dict
from tradebook.models.trade import Trade, TradeExit

_ENTRY = date(2025, 4, 1)


# ── Helpers ──────────────────────────────────────────────────────────────


def _trade(trade_id, exit_price=None, exit_shares=100, stop=9.0, held=10, current_price=None):
    exits = ()
    if exit_price is not None:
        exits = (TradeExit(price=exit_price, shares=exit_shares,
                           date=_ENTRY + timedelta(days=held)),)
    return Trade(
        id=trade_id,
        ticker="tk1",
        type="long",
        entry_date=_ENTRY,
        entry_price=10.0,
        shares=100,
        initial_stop_loss=stop,
        exits=exits,
        current_price=current_price,
    )


def _entry(trade, target_risk=None):
    metrics = calculate_metrics(trade, as_of=date(2025, 6, 1))
    normalized = normalize(metrics, target_risk) if target_risk else None
    return TradeAnalysis(trade=trade, metrics=metrics, normalized=normalized)


def _portfolio(target_risk=None):
    """Two winners (+$100, +$50) and one loser (−$50)."""
    return [
        _entry(_trade("w1", exit_price=11.0, held=10), target_risk),
        _entry(_trade("w2", exit_price=10.5, held=20), target_risk),
        _entry(_trade("l1", exit_price=9.5, held=4), target_risk),
    ]


# ── Tests ────────────────────────────────────────────────────────────────


class TestEmptyPortfolio:
    def test_zero_trades(self):
        stats = calculate_stats([])
        assert stats.total_trades == 0
        assert stats.batting_average == 0.0
        assert stats.win_loss_ratio is None
        assert stats.adjusted_win_loss_ratio is None
        assert stats.profit_factor is None
        assert stats.average_r_ratio is None
        assert stats.max_gain_loss_ratio is None
        assert stats.expectancy is None
        assert stats.total_profit_loss == 0.0

    def test_only_open_trades(self):
        stats = calculate_stats([_entry(_trade("o1", current_price=12.0))])
        assert stats.total_trades == 0
        assert stats.batting_average == 0.0


class TestAggregation:
    def test_profit_factor_and_batting_average(self):
        stats = calculate_stats(_portfolio())
        assert stats.total_trades == 3
        assert stats.winning_trades == 2
        assert stats.losing_trades == 1
        assert stats.profit_factor == pytest.approx(3.0)
        assert stats.batting_average == pytest.approx(2 / 3)

    def test_averages_and_ratios(self):
        stats = calculate_stats(_portfolio())
        # win % = 10, 5 → 7.5; loss % = −5
        assert stats.average_win_percent == pytest.approx(7.5)
        assert stats.average_loss_percent == pytest.approx(-5.0)
        assert stats.win_loss_ratio == pytest.approx(1.5)
        # (2/3 × 7.5) / (1/3 × 5) = 3.0
        assert stats.adjusted_win_loss_ratio == pytest.approx(3.0)
        # 2/3 × 7.5 − 1/3 × 5 = 3.333…
        assert stats.expectancy == pytest.approx(10 / 3)

    def test_adjusted_ratio_rewards_win_rate(self):
        """Same win/loss sizes, higher batting average → higher adjusted ratio."""
        low = calculate_stats([
            _entry(_trade("w1", exit_price=11.0)),
            _entry(_trade("l1", exit_price=9.5)),
        ])
        high = calculate_stats([
            _entry(_trade("w1", exit_price=11.0)),
            _entry(_trade("w2", exit_price=11.0)),
            _entry(_trade("l1", exit_price=9.5)),
        ])
        assert low.win_loss_ratio == pytest.approx(high.win_loss_ratio)
        assert high.adjusted_win_loss_ratio > low.adjusted_win_loss_ratio
        # win_loss × BA / (1 − BA)
        assert high.adjusted_win_loss_ratio == pytest.approx(
            high.win_loss_ratio * (2 / 3) / (1 / 3)
        )

    def test_r_ratio_and_extremes(self):
        stats = calculate_stats(_portfolio())
        # R = 1.0, 0.5, −0.5
        assert stats.average_r_ratio == pytest.approx(1 / 3)
        assert stats.max_gain_percent == pytest.approx(10.0)
        assert stats.max_loss_percent == pytest.approx(-5.0)
        assert stats.max_gain_loss_ratio == pytest.approx(2.0)

    def test_days_held_per_partition(self):
        stats = calculate_stats(_portfolio())
        assert stats.average_days_held_winners == pytest.approx(15.0)
        assert stats.average_days_held_losers == pytest.approx(4.0)

    def test_totals_are_additive(self):
        stats = calculate_stats(_portfolio())
        assert stats.total_profit_loss == pytest.approx(100.0)
        assert stats.total_profit_loss_percent == pytest.approx(10.0)

    def test_no_losses_leaves_ratios_undefined(self):
        stats = calculate_stats([_entry(_trade("w1", exit_price=11.0))])
        assert stats.profit_factor is None
        assert stats.win_loss_ratio is None
        assert stats.max_loss_percent is None
        assert stats.batting_average == 1.0
        assert stats.expectancy == pytest.approx(10.0)

    def test_break_even_counted_separately(self):
        stats = calculate_stats([
            _entry(_trade("w1", exit_price=11.0)),
            _entry(_trade("b1", exit_price=10.0)),
        ])
        assert stats.break_even_trades == 1
        assert stats.batting_average == pytest.approx(0.5)

    def test_partial_uses_realized_outcome_only(self):
        partial = _trade("p1", exit_price=11.0, exit_shares=50, current_price=5.0)
        stats = calculate_stats([_entry(partial)])
        assert stats.total_trades == 1
        assert stats.winning_trades == 1
        assert stats.total_profit_loss == pytest.approx(50.0)

    def test_undefined_r_excluded_from_mean(self):
        stats = calculate_stats([
            _entry(_trade("w1", exit_price=11.0)),
            _entry(_trade("z1", exit_price=11.0, stop=10.0)),
        ])
        assert stats.average_r_ratio == pytest.approx(1.0)


class TestNormalizedView:
    def test_absent_without_normalization(self):
        assert calculate_stats(_portfolio()).normalized is None

    def test_identity_when_risk_matches_target(self):
        stats = calculate_stats(_portfolio(target_risk=100.0))
        assert stats.normalized is not None
        assert stats.normalized.total_profit_loss == pytest.approx(stats.total_profit_loss)
        assert stats.normalized.profit_factor == pytest.approx(3.0)

    def test_rescaled_by_risk(self):
        # every trade risks $100; target $200 doubles amounts and percents
        stats = calculate_stats(_portfolio(target_risk=200.0))
        norm = stats.normalized
        assert norm.total_profit_loss == pytest.approx(200.0)
        assert norm.average_win_percent == pytest.approx(15.0)
        assert norm.average_r_ratio == pytest.approx(stats.average_r_ratio)
        assert norm.batting_average == pytest.approx(stats.batting_average)

    def test_excluded_trades_left_out(self):
        entries = _portfolio(target_risk=100.0) + [
            _entry(_trade("z1", exit_price=12.0, stop=10.0), target_risk=100.0),
        ]
        stats = calculate_stats(entries)
        assert stats.total_trades == 4
        assert stats.normalized.total_trades == 3


class TestIdempotence:
    def test_byte_identical_output(self):
        entries = _portfolio(target_risk=150.0)
        first = json.dumps(stats_to_dict(calculate_stats(entries)), sort_keys=True)
        second = json.dumps(stats_to_dict(calculate_stats(entries)), sort_keys=True)
        assert first == second

    def test_order_irrelevant(self):
        entries = _portfolio()
        forward = calculate_stats(entries)
        backward = calculate_stats(list(reversed(entries)))
        assert forward.profit_factor == pytest.approx(backward.profit_factor)
        assert forward.batting_average == pytest.approx(backward.batting_average)
