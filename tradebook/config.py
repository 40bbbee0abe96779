"""TradeBook — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from tradebook.analytics.models import AnalyticsSettings


_REQUIRED_VARS = [
    "CONTENT_API_URL",
]


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    content_api_url: str
    content_api_token: str
    account_equity: Optional[float]
    target_risk_pct: Optional[float]
    bucket_count: int
    target_exposure_pct: float
    min_risk_amount: float
    log_level: str
    http_port: int

    @property
    def content_base_url(self) -> str:
        """Content API base URL without a trailing slash."""
        return self.content_api_url.rstrip("/")

    def analytics_settings(self) -> AnalyticsSettings:
        """Normalization and exposure inputs for an analysis pass."""
        return AnalyticsSettings(
            equity=self.account_equity,
            target_risk_pct=self.target_risk_pct,
            bucket_count=self.bucket_count,
            target_exposure_pct=self.target_exposure_pct,
            min_risk_amount=self.min_risk_amount,
        )


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent.  Equity and target risk are optional here;
    analytics that need them report themselves unavailable instead.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return Config(
        content_api_url=os.environ["CONTENT_API_URL"],
        content_api_token=os.environ.get("CONTENT_API_TOKEN", ""),
        account_equity=_optional_float("ACCOUNT_EQUITY"),
        target_risk_pct=_optional_float("TARGET_RISK_PCT"),
        bucket_count=int(os.environ.get("BUCKET_COUNT", "4")),
        target_exposure_pct=float(os.environ.get("TARGET_EXPOSURE_PCT", "400.0")),
        min_risk_amount=float(os.environ.get("MIN_RISK_AMOUNT", "0.01")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        http_port=int(os.environ.get("HTTP_PORT", "8080")),
    )


def _optional_float(name: str) -> Optional[float]:
    value = os.environ.get(name)
    if not value:
        return None
    return float(value)
