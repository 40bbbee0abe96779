"""Content API async client.

Read-only access to the journal's content API: trades, tickers, tags and
charts.  Collections are served as paginated ``{"docs": [...]}`` responses;
every GET carries a large default ``limit`` so a collection normally arrives
in one page, and further pages are followed while ``hasNextPage`` is set.
"""

import asyncio
import logging
from typing import Callable, Optional, TypeVar

import httpx

from tradebook.analytics.errors import DataIntegrityError
from tradebook.config import Config
from tradebook.content.documents import parse_chart, parse_tag, parse_ticker, parse_trade
from tradebook.models.catalog import Chart, Tag, Ticker
from tradebook.models.trade import Trade

logger = logging.getLogger("tradebook.content")

T = TypeVar("T")

DEFAULT_LIMIT = 10000

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds
_MAX_RETRY_AFTER = 60.0
_RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class ContentClient:
    """Async client for the content API collections."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.content_base_url
        self._headers = {"Content-Type": "application/json"}
        if config.content_api_token:
            self._headers["Authorization"] = f"JWT {config.content_api_token}"

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get(self, url: str, params: Optional[dict] = None) -> httpx.Response:
        """GET *url* with retry on rate limits and transient failures.

        429, 502, 503 and 504 responses and transport errors are retried up
        to ``_MAX_RETRIES`` attempts.  A retryable response carrying a numeric
        ``Retry-After`` waits the server-given number of seconds (capped);
        everything else backs off exponentially.  Other error statuses raise
        immediately.
        """
        async with httpx.AsyncClient() as client:
            for attempt in range(1, _MAX_RETRIES + 1):
                final = attempt == _MAX_RETRIES
                try:
                    resp = await client.get(
                        url, headers=self._headers, params=params, timeout=30.0,
                    )
                except httpx.TransportError as exc:
                    if final:
                        raise
                    delay = _backoff(attempt)
                    logger.warning(
                        "GET %s failed (%s), attempt %d/%d, retrying in %.1fs",
                        url, exc, attempt, _MAX_RETRIES, delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                if resp.status_code not in _RETRYABLE_STATUS_CODES or final:
                    resp.raise_for_status()
                    return resp

                delay = _retry_after(resp) or _backoff(attempt)
                logger.warning(
                    "GET %s returned %d, attempt %d/%d, retrying in %.1fs",
                    url, resp.status_code, attempt, _MAX_RETRIES, delay,
                )
                await asyncio.sleep(delay)

        raise RuntimeError(f"GET {url}: no attempts made")

    # ── Collections ──────────────────────────────────────────────────────

    async def fetch_docs(self, collection: str, params: Optional[dict] = None) -> list[dict]:
        """Fetch every document of *collection*, following pagination.

        Args:
            collection: e.g. ``"trades"``, ``"tickers"``.
            params: Extra query parameters; ``limit`` defaults to 10000.
        """
        url = f"{self._base_url}/{collection.strip('/')}"
        query = dict(params or {})
        query.setdefault("limit", DEFAULT_LIMIT)
        page = 1
        docs: list[dict] = []

        while True:
            if page > 1:
                query["page"] = page
            resp = await self._get(url, params=query)
            data = resp.json()
            docs.extend(data.get("docs", []))
            if not data.get("hasNextPage"):
                break
            page = data.get("nextPage") or page + 1

        logger.debug("Fetched %d %s document(s)", len(docs), collection)
        return docs

    async def fetch_trades(self, params: Optional[dict] = None) -> list[Trade]:
        """Fetch and parse all trades.

        Documents that cannot be parsed are logged and skipped.
        """
        docs = await self.fetch_docs("trades", params)
        return _parse_all(docs, parse_trade, "trade")

    async def fetch_tickers(self) -> list[Ticker]:
        docs = await self.fetch_docs("tickers")
        return _parse_all(docs, parse_ticker, "ticker")

    async def fetch_tags(self) -> list[Tag]:
        docs = await self.fetch_docs("tags")
        return _parse_all(docs, parse_tag, "tag")

    async def fetch_charts(self, params: Optional[dict] = None) -> list[Chart]:
        docs = await self.fetch_docs("charts", params)
        return _parse_all(docs, parse_chart, "chart")


def _parse_all(docs: list[dict], parser: Callable[[dict], T], kind: str) -> list[T]:
    parsed: list[T] = []
    for doc in docs:
        try:
            parsed.append(parser(doc))
        except (DataIntegrityError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s document %s: %s", kind, doc.get("id"), exc)
    return parsed


def _backoff(attempt: int) -> float:
    return _RETRY_BASE_DELAY * (2 ** (attempt - 1))


def _retry_after(resp: httpx.Response) -> Optional[float]:
    """Seconds from a numeric ``Retry-After`` header, if present."""
    value = resp.headers.get("Retry-After")
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return min(max(seconds, 0.0), _MAX_RETRY_AFTER)
