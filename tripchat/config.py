"""Environment-driven settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

PLACEHOLDER_CREDENTIALS = frozenset({"your_openai_api_key_here", "your_exa_api_key_here"})


def credential(value: Optional[str]) -> Optional[str]:
    """Return the credential, or None when it is unset, blank or a placeholder."""
    if value is None:
        return None
    value = value.strip()
    if not value or value in PLACEHOLDER_CREDENTIALS:
        return None
    return value


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    exa_api_key: Optional[str] = None
    model: str = "gpt-4o"
    allowed_origins: Tuple[str, ...] = ("*",)
    query_timeout: float = 15.0
    # None waits for every query; otherwise aggregation proceeds with whatever arrived.
    batch_timeout: Optional[float] = None
    max_results: int = 30
    results_per_query: int = 10
    recency_days: int = 365

    @classmethod
    def from_env(cls) -> "Settings":
        raw_origins = os.getenv("TRIPCHAT_ALLOWED_ORIGINS") or "*"
        origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip()) or ("*",)
        return cls(
            openai_api_key=credential(os.getenv("OPENAI_API_KEY")),
            exa_api_key=credential(os.getenv("EXASEARCH_API_KEY")),
            model=os.getenv("TRIPCHAT_MODEL") or "gpt-4o",
            allowed_origins=origins,
            query_timeout=_float_env("TRIPCHAT_QUERY_TIMEOUT", 15.0) or 15.0,
            batch_timeout=_float_env("TRIPCHAT_BATCH_TIMEOUT", None),
            max_results=_int_env("TRIPCHAT_MAX_RESULTS", 30),
            results_per_query=_int_env("TRIPCHAT_RESULTS_PER_QUERY", 10),
            recency_days=_int_env("TRIPCHAT_RECENCY_DAYS", 365),
        )


def get_settings() -> Settings:
    """Read settings from the environment.

    Not cached: tests and operators can change the environment between calls.
    """
    return Settings.from_env()
