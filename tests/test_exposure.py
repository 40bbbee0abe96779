"""Tests for exposure tracking and bucket allocation."""

from datetime import date, timedelta

import pytest

from tradebook.analytics.errors import ConfigurationError
from tradebook.analytics.exposure import (
    allocate_buckets,
    assess_exposure_risk,
    calculate_portfolio_exposure,
    calculate_trade_exposure,
)
from tradebook.models.trade import Trade, TradeExit


def _position(trade_id, shares=250, entry_price=10.0, day=0, exits=()):
    """Default size: 250 × $10 = $2,500 → 25 % of $10,000 equity."""
    entry_date = date(2025, 5, 1) + timedelta(days=day)
    return Trade(
        id=trade_id,
        ticker="tk1",
        type="long",
        entry_date=entry_date,
        entry_price=entry_price,
        shares=shares,
        initial_stop_loss=entry_price * 0.9,
        exits=tuple(exits),
    )


# ── Per-trade exposure ───────────────────────────────────────────────────


class TestTradeExposure:
    def test_partial_exit_reduces_exposure(self):
        trade = _position("e1", exits=[TradeExit(price=12.0, shares=100, date=date(2025, 5, 9))])
        exp = calculate_trade_exposure(trade)
        assert exp.original_exposure == pytest.approx(2500.0)
        assert exp.current_exposure == pytest.approx(1500.0)
        assert exp.exposure_reduction_percent == pytest.approx(40.0)

    def test_portfolio_totals(self):
        trades = [
            _position("e1"),
            _position("e2", exits=[TradeExit(price=11.0, shares=250, date=date(2025, 5, 9))]),
            _position("e3", exits=[TradeExit(price=11.0, shares=50, date=date(2025, 5, 9))]),
        ]
        summary = calculate_portfolio_exposure(trades)
        assert summary.trade_count == 3
        assert summary.open_trade_count == 1
        assert summary.partial_trade_count == 1
        assert summary.total_original_exposure == pytest.approx(7500.0)
        assert summary.total_current_exposure == pytest.approx(4500.0)


# ── Risk assessment ──────────────────────────────────────────────────────


class TestExposureRisk:
    @pytest.mark.parametrize(
        "total,level",
        [(100.0, "low"), (200.0, "moderate"), (360.0, "high"), (400.0, "critical")],
    )
    def test_levels(self, total, level):
        assert assess_exposure_risk(total, 400.0).level == level


# ── Buckets ──────────────────────────────────────────────────────────────


class TestBucketAllocation:
    def test_four_equal_positions_fill_four_buckets(self):
        trades = [_position(f"p{i}", day=i) for i in range(4)]
        alloc = allocate_buckets(trades, equity=10_000.0)
        assert len(alloc.buckets) == 4
        for bucket in alloc.buckets:
            assert len(bucket.trade_ids) == 1
            assert bucket.occupied_percent == pytest.approx(25.0)
            assert bucket.overflow is False
        assert alloc.total_exposure_percent == pytest.approx(100.0)
        assert alloc.target_exposure_percent == 400.0
        assert alloc.utilization_percent == pytest.approx(25.0)
        assert alloc.risk.level == "low"

    def test_closed_trades_ignored(self):
        closed = _position("c1", exits=[TradeExit(price=11.0, shares=250, date=date(2025, 5, 9))])
        alloc = allocate_buckets([closed, _position("p1")], equity=10_000.0)
        ids = [tid for b in alloc.buckets for tid in b.trade_ids]
        assert ids == ["p1"]

    def test_partial_uses_remaining_shares(self):
        partial = _position("p1", exits=[TradeExit(price=11.0, shares=150, date=date(2025, 5, 9))])
        alloc = allocate_buckets([partial], equity=10_000.0)
        assert alloc.position_percents["p1"] == pytest.approx(10.0)

    def test_deterministic_across_input_order(self):
        trades = [_position(f"p{i}", shares=100 * (i + 1), day=i) for i in range(6)]
        forward = allocate_buckets(trades, equity=10_000.0)
        backward = allocate_buckets(list(reversed(trades)), equity=10_000.0)
        assert [b.trade_ids for b in forward.buckets] == [b.trade_ids for b in backward.buckets]

    def test_new_trade_does_not_reshuffle(self):
        trades = [_position(f"p{i}", shares=100 * (i + 1), day=i) for i in range(5)]
        before = allocate_buckets(trades, equity=10_000.0)
        after = allocate_buckets(trades + [_position("new", day=30)], equity=10_000.0)
        for old, new in zip(before.buckets, after.buckets):
            assert new.trade_ids[: len(old.trade_ids)] == old.trade_ids

    def test_overflow_reported_not_clipped(self):
        # 1,500 shares × $10 = 150 % of equity in one position
        alloc = allocate_buckets([_position("big", shares=1500)], equity=10_000.0)
        first = alloc.buckets[0]
        assert first.overflow is True
        assert first.overflow_trade_ids == ["big"]
        assert first.occupied_percent == pytest.approx(150.0)
        assert alloc.total_exposure_percent == pytest.approx(150.0)

    def test_least_loaded_bucket_receives_next_trade(self):
        trades = [
            _position("a", shares=500, day=0),
            _position("b", shares=100, day=1),
            _position("c", shares=100, day=2),
            _position("d", shares=100, day=3),
            _position("e", shares=100, day=4),
        ]
        alloc = allocate_buckets(trades, equity=10_000.0)
        assert alloc.buckets[0].trade_ids == ["a"]
        assert alloc.buckets[1].trade_ids == ["b", "e"]

    def test_missing_equity_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="equity"):
            allocate_buckets([_position("p1")], equity=None)

    def test_zero_buckets_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="bucket_count"):
            allocate_buckets([_position("p1")], equity=10_000.0, bucket_count=0)

    def test_serializes(self):
        data = allocate_buckets([_position("p1")], equity=10_000.0).to_dict()
        assert data["buckets"][0]["trade_ids"] == ["p1"]
        assert data["risk"]["level"] == "low"

    def test_numeric_ids_keep_placement_when_id_grows(self):
        # Same entry date, integer ids from the content API: "10" sorts after "9"
        trades = [_position(str(i), shares=100) for i in range(2, 10)]
        before = allocate_buckets(trades, equity=10_000.0)
        after = allocate_buckets(trades + [_position("10", shares=100)], equity=10_000.0)
        assert [b.trade_ids for b in before.buckets] == [
            ["2", "6"], ["3", "7"], ["4", "8"], ["5", "9"],
        ]
        for old, new in zip(before.buckets, after.buckets):
            assert new.trade_ids[: len(old.trade_ids)] == old.trade_ids
        assert after.buckets[0].trade_ids == ["2", "6", "10"]
