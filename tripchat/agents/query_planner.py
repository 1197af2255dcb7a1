"""Turn trip criteria into targeted search queries."""
from __future__ import annotations

from typing import Iterable, List, Optional

from tripchat.criteria import trip_length
from tripchat.log import get_logger
from tripchat.schemas import TripCriteria
from tripchat.tools.providers import DEFAULT_CATALOG, ProviderCatalog, SiteQuery

logger = get_logger(__name__)

FALLBACK_DESTINATION = "popular destination"


def budget_tier(budget: Optional[float]) -> str:
    if budget is None:
        return ""
    if budget > 2000:
        return "luxury"
    if budget > 1000:
        return "mid-range"
    return "budget"


def duration_label(days: int) -> str:
    if days == 1:
        return "day trip"
    if days <= 3:
        return "weekend"
    if days <= 7:
        return "week"
    return "long trip"


def plan_queries(criteria: TripCriteria, catalog: ProviderCatalog = DEFAULT_CATALOG) -> List[str]:
    """Return the ordered, de-duplicated query list for one retrieval batch.

    Output depends only on ``criteria`` and ``catalog``. Interests are taken
    in sorted order and capped at ``catalog.max_interest_activities`` so the
    fan-out stays bounded.
    """
    fields = {
        "destination": criteria.destination or FALLBACK_DESTINATION,
        "budget_tier": budget_tier(criteria.budget),
        "style": criteria.travel_style or "",
        "activity": "",
        "duration_label": "",
    }

    queries: List[str] = []
    for group in (
        catalog.accommodation_queries,
        catalog.dining_queries,
        catalog.activity_queries,
        catalog.guide_queries,
        catalog.transport_queries,
    ):
        _extend(queries, group, fields)

    interests = sorted(set(criteria.activities))[: catalog.max_interest_activities]
    for activity in interests:
        _extend(queries, catalog.interest_queries, {**fields, "activity": activity})

    days = trip_length(criteria)
    if days:
        _extend(queries, catalog.duration_queries, {**fields, "duration_label": duration_label(days)})

    logger.info("Generated %d travel search queries for %s", len(queries), fields["destination"])
    return queries


def _extend(queries: List[str], templates: Iterable[SiteQuery], fields: dict) -> None:
    for template in templates:
        query = _render(template, fields)
        if query not in queries:
            queries.append(query)


def _render(template: SiteQuery, fields: dict) -> str:
    body = template.phrase.format(**fields)
    text = f"site:{template.domain} {body}" if template.domain else body
    # empty placeholders leave double spaces behind
    return " ".join(text.split())
