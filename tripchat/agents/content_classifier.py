"""Relevance gate, category assignment and field extraction for search results.

Every field extractor walks its own ordered pattern tuple and stops at the
first acceptable match. Extractors never combine evidence from different
patterns.
"""
from __future__ import annotations

import re
from typing import Callable, Optional, Pattern, Sequence, Tuple

from tripchat.log import get_logger
from tripchat.schemas import RawSearchResult, TravelItem
from tripchat.tools.providers import DEFAULT_CATALOG, ProviderCatalog, host_matches, host_of

logger = get_logger(__name__)

DESCRIPTION_LIMIT = 400
DESCRIPTION_UNAVAILABLE = "Description not available"
UNKNOWN_LOCATION = "Location not specified"

_RATING_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(\d+(?:\.\d+)?)\s*(?:out of|/)\s*5\b", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*stars?\b", re.IGNORECASE),
    re.compile(r"\brating\s*:?\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
)

_ADDRESS_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\baddress\s*:\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"\blocated at\s*:?\s*([^,\n]+)", re.IGNORECASE),
    re.compile(r"(\d+\s+[A-Za-z\s]+?(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd)\b[^,\n]*)"),
)

_HOURS_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\bhours?\s*:\s*([^,\n]+)", re.IGNORECASE),
    re.compile(r"\bopen\s*:\s*([^,\n]+)", re.IGNORECASE),
    re.compile(r"(\d{1,2}:\d{2}\s*(?:AM|PM)\s*-\s*\d{1,2}:\d{2}\s*(?:AM|PM))", re.IGNORECASE),
)

_CONTACT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\bphone\s*:?\s*([+(]?\d[\d\s\-()]{4,}\d)", re.IGNORECASE),
    re.compile(r"\btel\s*[:.]?\s*([+(]?\d[\d\s\-()]{4,}\d)", re.IGNORECASE),
    re.compile(r"(\+\d{1,3}\s*\d{3,4}\s*\d{3,4}\s*\d{3,4})"),
)

_DOLLAR_RUN = re.compile(r"\$+")
_PRICE_WORDS = re.compile(r"\b(budget|cheap|affordable|expensive|luxury|premium)\b", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def is_travel_content(result: RawSearchResult, catalog: ProviderCatalog = DEFAULT_CATALOG) -> bool:
    """Both the provider domain and travel vocabulary are required."""
    if not catalog.is_allowed_host(result.url):
        return False
    haystack = f"{result.title}\n{result.text}".lower()
    return any(token in haystack for token in catalog.travel_vocabulary)


def categorize(result: RawSearchResult, catalog: ProviderCatalog = DEFAULT_CATALOG) -> str:
    host = host_of(result.url)
    text = result.text.lower()
    for rule in catalog.category_rules:
        if any(host_matches(host, domain) for domain in rule.domains):
            return rule.category
        if any(keyword in text for keyword in rule.keywords):
            return rule.category
    return catalog.default_category


def _first_capture(
    patterns: Sequence[Pattern[str]],
    text: str,
    accept: Callable[[str], bool],
) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1).strip()
        if accept(candidate):
            return candidate
    return None


def extract_rating(text: str) -> Optional[float]:
    for pattern in _RATING_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        value = float(match.group(1))
        if 0 <= value <= 5:
            return value
    return None


def _price_from_symbols(text: str) -> Optional[str]:
    match = _DOLLAR_RUN.search(text)
    if not match:
        return None
    run = len(match.group(0))
    if run >= 3:
        return "Expensive"
    if run == 2:
        return "Moderate"
    return "Budget"


def _price_from_words(text: str) -> Optional[str]:
    match = _PRICE_WORDS.search(text)
    if not match:
        return None
    token = match.group(1)
    lowered = token.lower()
    if lowered == "luxury":
        return "Luxury"
    if lowered == "budget":
        return "Budget"
    return token


_PRICE_MATCHERS: Tuple[Callable[[str], Optional[str]], ...] = (_price_from_symbols, _price_from_words)


def extract_price_range(text: str) -> Optional[str]:
    for matcher in _PRICE_MATCHERS:
        price = matcher(text)
        if price:
            return price
    return None


def extract_address(text: str) -> Optional[str]:
    return _first_capture(_ADDRESS_PATTERNS, text, lambda c: 10 < len(c) < 200)


def extract_hours(text: str) -> Optional[str]:
    return _first_capture(_HOURS_PATTERNS, text, lambda c: 0 < len(c) < 100)


def extract_contact(text: str) -> Optional[str]:
    return _first_capture(_CONTACT_PATTERNS, text, bool)


def build_description(result: RawSearchResult) -> str:
    highlights = [h.strip() for h in result.highlights if h and h.strip()]
    if highlights:
        return " ".join(highlights)[:DESCRIPTION_LIMIT]

    sentences = []
    for raw in _SENTENCE_SPLIT.split(result.text):
        sentence = " ".join(raw.split())
        lowered = sentence.lower()
        if not 30 < len(sentence) < 200:
            continue
        if "cookie" in lowered or "privacy" in lowered:
            continue
        sentences.append(sentence)
        if len(sentences) == 3:
            break
    if sentences:
        return ". ".join(sentences)[:DESCRIPTION_LIMIT]
    return DESCRIPTION_UNAVAILABLE


def classify_result(
    result: RawSearchResult,
    destination: Optional[str] = None,
    catalog: ProviderCatalog = DEFAULT_CATALOG,
) -> Optional[TravelItem]:
    """Return a ``TravelItem`` for travel content, or None to reject it."""
    if not is_travel_content(result, catalog):
        logger.debug("Rejected non-travel result %s", result.url)
        return None

    source = catalog.source_label(result.url)
    text = result.text
    return TravelItem(
        id=result.id,
        title=result.title.strip() or source,
        description=build_description(result),
        url=result.url,
        source=source,
        category=categorize(result, catalog),
        location=destination or UNKNOWN_LOCATION,
        rating=extract_rating(text),
        price_range=extract_price_range(text),
        address=extract_address(text),
        hours=extract_hours(text),
        contact=extract_contact(text),
    )
