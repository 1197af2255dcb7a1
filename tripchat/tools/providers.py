"""Travel content providers known to the planner and the classifier.

Adding a provider means editing the tables below; neither the query planner
nor the classifier names a domain in its own control flow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse


@dataclass(frozen=True)
class SiteQuery:
    """One search phrasing, optionally scoped with ``site:<domain>``.

    ``phrase`` is a ``str.format`` template; available fields are
    ``destination``, ``budget_tier``, ``style``, ``activity`` and
    ``duration_label``.
    """

    domain: Optional[str]
    phrase: str


@dataclass(frozen=True)
class CategoryRule:
    category: str
    domains: Tuple[str, ...]
    keywords: Tuple[str, ...]


@dataclass(frozen=True)
class ProviderCatalog:
    accommodation_queries: Tuple[SiteQuery, ...]
    dining_queries: Tuple[SiteQuery, ...]
    activity_queries: Tuple[SiteQuery, ...]
    interest_queries: Tuple[SiteQuery, ...]
    guide_queries: Tuple[SiteQuery, ...]
    transport_queries: Tuple[SiteQuery, ...]
    duration_queries: Tuple[SiteQuery, ...]
    # domains passed to the search provider and accepted by the relevance gate
    allowed_domains: Tuple[str, ...]
    travel_vocabulary: Tuple[str, ...]
    category_rules: Tuple[CategoryRule, ...]
    source_labels: Dict[str, str] = field(default_factory=dict)
    default_category: str = "attraction"
    max_interest_activities: int = 5

    def is_allowed_host(self, url: str) -> bool:
        host = host_of(url)
        return bool(host) and any(host_matches(host, domain) for domain in self.allowed_domains)

    def source_label(self, url: str) -> str:
        host = host_of(url)
        if not host:
            return "Unknown Source"
        for domain, label in self.source_labels.items():
            if host_matches(host, domain):
                return label
        first = host.split(".")[0]
        return first[:1].upper() + first[1:]


def host_of(url: str) -> str:
    """Lower-cased host without a leading ``www.``; empty when unparsable."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


DEFAULT_CATALOG = ProviderCatalog(
    accommodation_queries=(
        SiteQuery("booking.com", '"{destination}" hotels {budget_tier} {style}'),
        SiteQuery("airbnb.com", '"{destination}" {style} accommodation'),
        SiteQuery("hotels.com", '"{destination}" {budget_tier} hotels'),
    ),
    dining_queries=(
        SiteQuery("tripadvisor.com", '"{destination}" restaurants best food'),
        SiteQuery("yelp.com", '"{destination}" restaurants dining'),
        SiteQuery("opentable.com", '"{destination}" restaurants reservations'),
        SiteQuery("timeout.com", '"{destination}" best restaurants food guide'),
    ),
    activity_queries=(
        SiteQuery("tripadvisor.com", '"{destination}" things to do attractions'),
        SiteQuery("viator.com", '"{destination}" tours activities'),
        SiteQuery("getyourguide.com", '"{destination}" attractions tours'),
        SiteQuery("klook.com", '"{destination}" activities experiences'),
    ),
    interest_queries=(
        SiteQuery("tripadvisor.com", '"{destination}" "{activity}" activities'),
        SiteQuery("viator.com", '"{destination}" "{activity}" tours'),
    ),
    guide_queries=(
        SiteQuery("lonelyplanet.com", '"{destination}" travel guide'),
        SiteQuery("fodors.com", '"{destination}" travel guide'),
        SiteQuery("frommers.com", '"{destination}" travel guide'),
    ),
    transport_queries=(
        SiteQuery("kayak.com", 'flights to "{destination}"'),
        SiteQuery("rome2rio.com", '"{destination}" transportation'),
    ),
    duration_queries=(
        SiteQuery(None, '"{destination}" {duration_label} itinerary guide'),
        SiteQuery("timeout.com", '"{destination}" {duration_label} guide'),
    ),
    allowed_domains=(
        "tripadvisor.com",
        "booking.com",
        "airbnb.com",
        "expedia.com",
        "hotels.com",
        "yelp.com",
        "timeout.com",
        "lonelyplanet.com",
        "fodors.com",
        "frommers.com",
        "viator.com",
        "getyourguide.com",
        "klook.com",
        "tiqets.com",
        "opentable.com",
        "resy.com",
        "zomato.com",
        "kayak.com",
        "skyscanner.com",
        "rome2rio.com",
    ),
    travel_vocabulary=(
        "hotel",
        "restaurant",
        "attraction",
        "tour",
        "activity",
        "travel",
        "visit",
        "guide",
        "booking",
        "reservation",
    ),
    category_rules=(
        CategoryRule(
            "accommodation",
            ("booking.com", "hotels.com", "airbnb.com"),
            ("hotel", "accommodation", "stay"),
        ),
        CategoryRule(
            "restaurant",
            ("yelp.com", "opentable.com", "resy.com"),
            ("restaurant", "dining", "food"),
        ),
        CategoryRule(
            "activity",
            ("viator.com", "getyourguide.com", "klook.com"),
            ("tour", "activity", "experience"),
        ),
        CategoryRule(
            "transportation",
            ("kayak.com", "skyscanner.com", "rome2rio.com"),
            ("flight", "transport"),
        ),
    ),
    source_labels={
        "tripadvisor.com": "TripAdvisor",
        "booking.com": "Booking.com",
        "airbnb.com": "Airbnb",
        "expedia.com": "Expedia",
        "hotels.com": "Hotels.com",
        "yelp.com": "Yelp",
        "timeout.com": "Time Out",
        "lonelyplanet.com": "Lonely Planet",
        "fodors.com": "Fodors",
        "frommers.com": "Frommers",
        "viator.com": "Viator",
        "getyourguide.com": "GetYourGuide",
        "klook.com": "Klook",
        "opentable.com": "OpenTable",
        "kayak.com": "Kayak",
        "skyscanner.com": "Skyscanner",
    },
)
