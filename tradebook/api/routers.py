"""Internal API routers — /trades/metrics, /trades/stats, /trades/exposure, /trades/histogram.

No analytics logic here.  Each request fetches a fresh trade snapshot from
the content API and delegates to the analytics package.
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from tradebook.analytics.engine import analyze_portfolio, analyze_trades
from tradebook.analytics.errors import DataIntegrityError
from tradebook.analytics.filters import (
    StatsFilter,
    filter_entries,
    period_range,
    stats_by_month,
    stats_by_year,
)
from tradebook.analytics.histogram import pnl_histogram
from tradebook.analytics.metrics import exit_breakdown
from tradebook.analytics.models import AnalyticsSettings
from tradebook.analytics.stats import calculate_stats, stats_to_dict

logger = logging.getLogger("tradebook")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_content_client = None  # Set via configure_routers()
_settings: AnalyticsSettings = AnalyticsSettings()


def configure_routers(
    content_client,
    settings: Optional[AnalyticsSettings] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        content_client: A ``ContentClient`` instance (or duck-type for tests).
        settings: Equity, target risk and bucket configuration.
    """
    global _content_client, _settings  # noqa: PLW0603
    _content_client = content_client
    _settings = settings or AnalyticsSettings()


async def _fetch_trades():
    if _content_client is None:
        return []
    return await _content_client.fetch_trades()


def _build_filter(
    time_period: str,
    start_date: Optional[date],
    end_date: Optional[date],
    status: str,
    ticker: Optional[list[str]],
    trade_type: Optional[str],
) -> StatsFilter:
    try:
        return StatsFilter(
            time_period=time_period,
            start_date=start_date,
            end_date=end_date,
            status_filter=status,
            ticker_ids=tuple(ticker or ()),
            trade_type=trade_type,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _upstream_error(exc: Exception) -> JSONResponse:
    logger.error("Content API request failed: %s", exc)
    return JSONResponse(
        status_code=502,
        content={"error": f"Content API request failed: {exc}"},
    )


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/trades/metrics")
async def get_trade_metrics(as_of: Optional[date] = Query(default=None)):
    """Return per-trade metrics, normalized metrics and rejected trades."""
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    entries, rejected, unavailable = analyze_trades(trades, _settings, as_of)
    return {
        "trades": [
            {
                "id": e.trade.id,
                "ticker": e.trade.ticker_id,
                "symbol": e.trade.symbol,
                "type": e.trade.type,
                "metrics": asdict(e.metrics),
                "normalized": asdict(e.normalized) if e.normalized else None,
            }
            for e in entries
        ],
        "rejected": [asdict(r) for r in rejected],
        "unavailable": unavailable,
    }


@router.get("/trades/{trade_id}/exits")
async def get_trade_exits(trade_id: str):
    """Return the per-exit breakdown of one trade."""
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    for trade in trades:
        if trade.id == trade_id:
            try:
                details = exit_breakdown(trade)
            except DataIntegrityError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from exc
            return {
                "trade_id": trade.id,
                "exits": [asdict(d) for d in details],
            }
    raise HTTPException(status_code=404, detail=f"Unknown trade: {trade_id}")


@router.get("/trades/stats")
async def get_trade_stats(
    time_period: str = Query(default="all"),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    status: str = Query(default="closed-and-partial"),
    ticker: Optional[list[str]] = Query(default=None),
    type: Optional[str] = Query(default=None),
    as_of: Optional[date] = Query(default=None),
):
    """Return raw and normalized statistics for the filtered trade set."""
    filters = _build_filter(time_period, start_date, end_date, status, ticker, type)
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    entries, rejected, unavailable = analyze_trades(trades, _settings, as_of)
    selected = filter_entries(entries, filters, today=as_of)
    stats = calculate_stats(selected, include_normalized="normalization" not in unavailable)
    start, end = period_range(filters, today=as_of)
    return {
        "stats": stats_to_dict(stats),
        "metadata": {
            "total_trades": len(selected),
            "start_date": start,
            "end_date": end,
            "filters": asdict(filters),
        },
        "rejected": [asdict(r) for r in rejected],
        "unavailable": unavailable,
    }


@router.get("/trades/stats/yearly")
async def get_yearly_stats(
    year: Optional[int] = Query(default=None),
    years: int = Query(default=3, ge=1, le=20),
):
    """Return statistics per calendar year, newest first."""
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    entries, _, unavailable = analyze_trades(trades, _settings)
    rows = stats_by_year(
        entries,
        year or date.today().year,
        years=years,
        include_normalized="normalization" not in unavailable,
    )
    return {"periods": [_period_row(r) for r in rows], "unavailable": unavailable}


@router.get("/trades/stats/monthly")
async def get_monthly_stats(year: Optional[int] = Query(default=None)):
    """Return statistics for each month of a year."""
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    entries, _, unavailable = analyze_trades(trades, _settings)
    rows = stats_by_month(
        entries,
        year or date.today().year,
        include_normalized="normalization" not in unavailable,
    )
    return {"periods": [_period_row(r) for r in rows], "unavailable": unavailable}


@router.get("/trades/exposure")
async def get_exposure():
    """Return the bucket allocation of open and partial positions."""
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    analysis = analyze_portfolio(trades, _settings)
    if analysis.exposure is None:
        return {
            "exposure": None,
            "rejected": [asdict(r) for r in analysis.rejected],
            "unavailable": analysis.unavailable,
        }
    return {
        "exposure": analysis.exposure.to_dict(),
        "rejected": [asdict(r) for r in analysis.rejected],
        "unavailable": analysis.unavailable,
    }


@router.get("/trades/histogram")
async def get_histogram(
    view: str = Query(default="raw", pattern="^(raw|normalized)$"),
    time_period: str = Query(default="all"),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    status: str = Query(default="closed-and-partial"),
    as_of: Optional[date] = Query(default=None),
):
    """Return the P&L-percent distribution of the filtered trade set."""
    filters = _build_filter(time_period, start_date, end_date, status, None, None)
    try:
        trades = await _fetch_trades()
    except httpx.HTTPError as exc:
        return _upstream_error(exc)

    entries, _, unavailable = analyze_trades(trades, _settings, as_of)
    selected = filter_entries(entries, filters, today=as_of)
    histogram = pnl_histogram(selected, normalized=view == "normalized")
    return {"histogram": histogram.to_dict(), "unavailable": unavailable}


def _period_row(row) -> dict:
    return {
        "period": row.period,
        "start_date": row.start,
        "end_date": row.end,
        "stats": stats_to_dict(row.stats),
    }
