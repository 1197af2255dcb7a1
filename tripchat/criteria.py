"""Merge and readiness rules for accumulated trip criteria."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from tripchat.schemas import TripCriteria

# A trip is never drafted before this many history entries (three exchanges).
GENERATION_TURN_FLOOR = 6
GENERATION_MIN_SCORE = 4


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_defined(value: Any) -> bool:
    return value is not None


def _has_items(value: Any) -> bool:
    return bool(value) and len(value) > 0


_FIELD_RULES: Tuple[Tuple[str, Callable[[Any], bool]], ...] = (
    ("destination", _has_text),
    ("start_date", _is_defined),
    ("end_date", _is_defined),
    ("duration", _is_defined),
    ("budget", _is_defined),
    ("travelers", _is_defined),
    ("travel_style", _has_text),
    ("activities", _has_items),
    ("accommodation_type", _has_text),
    ("dietary_restrictions", _has_items),
    ("accessibility", _has_items),
)


def merge_criteria(
    existing: TripCriteria,
    incoming: Union[TripCriteria, Mapping[str, Any], None],
) -> TripCriteria:
    """Overlay every present field of ``incoming`` onto ``existing``.

    A field is present when it holds a non-blank string, a defined number or
    date, or a non-empty list. Lists replace rather than union: the extractor
    reports its whole current understanding each turn. Absent fields never
    erase what ``existing`` already knows.
    """
    if incoming is None:
        return existing.model_copy(deep=True)
    if not isinstance(incoming, TripCriteria):
        incoming = TripCriteria.model_validate(dict(incoming))

    updates: Dict[str, Any] = {}
    for name, is_present in _FIELD_RULES:
        value = getattr(incoming, name)
        if is_present(value):
            updates[name] = list(value) if isinstance(value, list) else value
    return existing.model_copy(update=updates, deep=True)


@dataclass(frozen=True)
class Completeness:
    has_destination: bool
    has_dates: bool
    has_budget: bool
    has_travelers: bool
    has_style: bool

    @property
    def score(self) -> int:
        return sum(
            (self.has_destination, self.has_dates, self.has_budget, self.has_travelers, self.has_style)
        )


def completeness(criteria: TripCriteria) -> Completeness:
    return Completeness(
        has_destination=_has_text(criteria.destination),
        has_dates=_is_defined(criteria.start_date) or _is_defined(criteria.duration),
        has_budget=_is_defined(criteria.budget),
        has_travelers=_is_defined(criteria.travelers),
        has_style=_has_text(criteria.travel_style),
    )


def ready_for_generation(signals: Completeness, turn_count: int) -> bool:
    """The generation gate: every condition must hold."""
    return (
        turn_count > GENERATION_TURN_FLOOR
        and signals.has_destination
        and signals.has_dates
        and signals.score >= GENERATION_MIN_SCORE
    )


def trip_length(criteria: TripCriteria) -> Optional[int]:
    """Trip length in days: explicit duration, else the inclusive date span."""
    if criteria.duration:
        return criteria.duration
    start, end = criteria.start_date, criteria.end_date
    if start and end and end >= start:
        return (end - start).days + 1
    return None


# Asked in this order, one at a time.
_QUESTION_ORDER: Tuple[Tuple[str, str], ...] = (
    ("destination", "Where would you like to travel?"),
    ("dates", "When are you planning to travel?"),
    ("travelers", "How many people are traveling?"),
    ("budget", "What's your budget for this trip?"),
    ("style", "What kind of travel experience are you looking for?"),
    ("activities", "What activities interest you most?"),
)


def missing_details(criteria: TripCriteria) -> List[str]:
    signals = completeness(criteria)
    known = {
        "destination": signals.has_destination,
        "dates": signals.has_dates,
        "travelers": signals.has_travelers,
        "budget": signals.has_budget,
        "style": signals.has_style,
        "activities": _has_items(criteria.activities),
    }
    return [name for name, _ in _QUESTION_ORDER if not known[name]]


def next_question(criteria: TripCriteria) -> Optional[str]:
    missing = set(missing_details(criteria))
    for name, question in _QUESTION_ORDER:
        if name in missing:
            return question
    return None
