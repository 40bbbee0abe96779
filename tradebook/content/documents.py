"""Content API documents → typed models.

The content API serves camelCase JSON documents.  Cached metric fields it
may include (``profitLossAmount``, ``rRatio``, ``normalizedMetrics``,
``status`` …) are ignored: those values are recomputed from the raw entry,
exit and stop data.
"""

from datetime import date, datetime
from typing import Any, Optional

from tradebook.analytics.errors import DataIntegrityError
from tradebook.models.catalog import Chart, Media, Tag, Ticker
from tradebook.models.trade import StopChange, Trade, TradeExit

_TRADE_REQUIRED = ("id", "ticker", "type", "entryDate", "entryPrice", "shares", "initialStopLoss")


def parse_date(value: Any) -> date:
    """Parse an ISO date or timestamp (``Z`` suffix allowed) to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).date()


def parse_tag(doc: dict) -> Tag:
    return Tag(
        id=str(doc["id"]),
        name=doc.get("name", ""),
        color=doc.get("color", ""),
        description=doc.get("description"),
        charts_count=doc.get("chartsCount"),
    )


def parse_ticker(doc: dict) -> Ticker:
    return Ticker(
        id=str(doc["id"]),
        symbol=doc.get("symbol", ""),
        name=doc.get("name", ""),
        sector=doc.get("sector"),
        description=doc.get("description"),
        tags=tuple(parse_tag(t) for t in doc.get("tags") or [] if isinstance(t, dict)),
    )


def parse_media(doc: dict) -> Media:
    return Media(
        id=str(doc["id"]),
        url=doc.get("url", ""),
        filename=doc.get("filename", ""),
        mime_type=doc.get("mimeType", ""),
        alt=doc.get("alt"),
        width=doc.get("width"),
        height=doc.get("height"),
    )


def parse_chart(doc: dict) -> Chart:
    image = doc.get("image")
    return Chart(
        id=str(doc["id"]),
        ticker=_ticker_ref(doc.get("ticker")),
        timestamp=doc.get("timestamp", ""),
        image=parse_media(image) if isinstance(image, dict) else None,
        notes=doc.get("notes"),
        tags=tuple(parse_tag(t) for t in doc.get("tags") or [] if isinstance(t, dict)),
    )


def parse_trade(doc: dict) -> Trade:
    """Build a :class:`Trade` from a content API document.

    Raises:
        DataIntegrityError: If a required field is missing or malformed.
    """
    trade_id = str(doc.get("id", "")) or None
    missing = [k for k in _TRADE_REQUIRED if doc.get(k) in (None, "")]
    if missing:
        raise DataIntegrityError(
            f"trade document missing field(s): {', '.join(missing)}", trade_id,
        )

    try:
        return Trade(
            id=str(doc["id"]),
            ticker=_ticker_ref(doc["ticker"]),
            type=doc["type"],
            entry_date=parse_date(doc["entryDate"]),
            entry_price=float(doc["entryPrice"]),
            shares=float(doc["shares"]),
            initial_stop_loss=float(doc["initialStopLoss"]),
            modified_stops=tuple(
                StopChange(
                    price=float(s["price"]),
                    date=parse_date(s["date"]),
                    notes=s.get("notes"),
                )
                for s in doc.get("modifiedStops") or []
            ),
            exits=tuple(
                TradeExit(
                    price=float(e["price"]),
                    shares=float(e["shares"]),
                    date=parse_date(e["date"]),
                    reason=e.get("reason"),
                    notes=e.get("notes"),
                )
                for e in doc.get("exits") or []
            ),
            current_price=_optional_float(doc.get("currentPrice")),
            notes=doc.get("notes"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DataIntegrityError(f"malformed trade document: {exc}", trade_id) from exc


def _ticker_ref(value: Any):
    if isinstance(value, dict):
        return parse_ticker(value)
    return "" if value is None else str(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)
