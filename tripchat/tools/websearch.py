from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from tripchat.config import get_settings
from tripchat.errors import ConfigurationError
from tripchat.log import get_logger
from tripchat.schemas import RawSearchResult
from tripchat.tools.providers import DEFAULT_CATALOG

logger = get_logger(__name__)


class ExaSearcher:
    """Document search backed by the Exa neural search API.

    ``search()`` returns normalised ``RawSearchResult`` rows, most relevant
    first. Rows without a url are dropped; every other missing field
    falls back to a neutral default so callers never see ``None``.
    """

    SEARCH_ENDPOINT = "https://api.exa.ai/search"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        include_domains: Optional[Sequence[str]] = None,
        num_results: Optional[int] = None,
        recency_days: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.exa_api_key
        self.include_domains = list(include_domains if include_domains is not None else DEFAULT_CATALOG.allowed_domains)
        self.num_results = num_results or settings.results_per_query
        self.recency_days = recency_days if recency_days is not None else settings.recency_days
        self.timeout = timeout or settings.query_timeout

    async def search(self, query: str) -> List[RawSearchResult]:
        if not self.api_key:
            raise ConfigurationError(
                "Exa API key is not configured. Please set EXASEARCH_API_KEY in your .env file."
            )

        payload: Dict[str, object] = {
            "query": query,
            "type": "neural",
            "useAutoprompt": False,
            "numResults": self.num_results,
            "contents": {"text": True, "highlights": True},
        }
        if self.include_domains:
            payload["includeDomains"] = self.include_domains
        if self.recency_days:
            payload["startPublishedDate"] = _days_ago(self.recency_days)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.SEARCH_ENDPOINT,
                json=payload,
                headers={"x-api-key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()

        results = self._normalise(data.get("results") or [])
        logger.info("Exa returned %d results for '%s'", len(results), query)
        return results

    @staticmethod
    def _normalise(rows: Iterable[Dict]) -> List[RawSearchResult]:
        now = datetime.now(timezone.utc).isoformat()
        normalised: List[RawSearchResult] = []
        for row in rows:
            if not isinstance(row, dict) or not row.get("url"):
                continue
            row = dict(row)
            row.setdefault("id", row["url"])
            if not row.get("publishedDate"):
                row["publishedDate"] = now
            try:
                normalised.append(RawSearchResult.model_validate(row))
            except ValidationError:
                logger.warning("Skipping malformed search row for %s", row.get("url"), exc_info=True)
        return normalised


def _days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).date().isoformat()
