"""Catalog entities served by the content API — read-only display data."""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class Tag:
    """A chart/ticker classification label."""

    id: str
    name: str
    color: str = ""
    description: Optional[str] = None
    charts_count: Optional[int] = None


@dataclass(frozen=True)
class Ticker:
    """A traded instrument."""

    id: str
    symbol: str
    name: str = ""
    sector: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[Tag, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Media:
    """An uploaded image reference."""

    id: str
    url: str
    filename: str = ""
    mime_type: str = ""
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Chart:
    """An annotated chart screenshot for a ticker."""

    id: str
    ticker: Union[Ticker, str]
    timestamp: str
    image: Optional[Media] = None
    notes: Optional[str] = None
    tags: tuple[Tag, ...] = field(default_factory=tuple)
