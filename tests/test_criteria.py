from datetime import date

from tripchat.criteria import (
    completeness,
    merge_criteria,
    missing_details,
    next_question,
    ready_for_generation,
    trip_length,
)
from tripchat.schemas import TripCriteria


def _full_criteria(**overrides) -> TripCriteria:
    values = {
        "destination": "Lisbon",
        "duration": 5,
        "budget": 2400,
        "travelers": 2,
        "travelStyle": "cultural",
    }
    values.update(overrides)
    return TripCriteria.model_validate(values)


def test_merge_keeps_fields_absent_from_incoming():
    existing = _full_criteria(activities=["food", "history"])
    merged = merge_criteria(existing, TripCriteria(destination="Porto"))

    assert merged.destination == "Porto"
    assert merged.duration == 5
    assert merged.budget == 2400
    assert merged.travelers == 2
    assert merged.travel_style == "cultural"
    assert merged.activities == ["food", "history"]


def test_merge_ignores_blank_and_empty_values():
    existing = _full_criteria(activities=["food"])
    merged = merge_criteria(existing, {"destination": "   ", "activities": [], "travelStyle": None})

    assert merged.destination == "Lisbon"
    assert merged.activities == ["food"]
    assert merged.travel_style == "cultural"


def test_merge_replaces_lists_instead_of_union():
    existing = TripCriteria(activities=["food", "history"])
    merged = merge_criteria(existing, TripCriteria(activities=["nightlife"]))

    assert merged.activities == ["nightlife"]


def test_merge_does_not_mutate_inputs():
    existing = TripCriteria(destination="Rome", activities=["art"])
    incoming = TripCriteria(activities=["food"])
    merged = merge_criteria(existing, incoming)
    merged.activities.append("history")

    assert existing.activities == ["art"]
    assert incoming.activities == ["food"]


def test_merge_treats_zero_budget_as_known():
    merged = merge_criteria(TripCriteria(budget=900), TripCriteria(budget=0))
    assert merged.budget == 0


def test_lenient_validation_drops_unknown_vocabulary():
    criteria = TripCriteria.model_validate(
        {
            "destination": " Kyoto ",
            "travelStyle": "Spontaneous",
            "activities": ["Food", "karaoke", "food", "ART"],
            "accommodationType": "castle",
            "travelers": "0",
            "duration": "4",
            "startDate": "next spring",
        }
    )

    assert criteria.destination == "Kyoto"
    assert criteria.travel_style is None
    assert criteria.activities == ["food", "art"]
    assert criteria.accommodation_type is None
    assert criteria.travelers is None
    assert criteria.duration == 4
    assert criteria.start_date is None


def test_completeness_counts_five_signals():
    signals = completeness(_full_criteria())
    assert signals.has_destination and signals.has_dates
    assert signals.score == 5

    sparse = completeness(TripCriteria(destination="Tokyo", duration=7))
    assert sparse.has_destination and sparse.has_dates
    assert not sparse.has_budget
    assert sparse.score == 2


def test_dates_satisfied_by_start_date_alone():
    signals = completeness(TripCriteria(start_date=date(2026, 4, 1)))
    assert signals.has_dates
    assert signals.score == 1


def test_gate_requires_score_of_four():
    three = completeness(TripCriteria(destination="Tokyo", duration=7, travelers=2))
    assert three.score == 3
    assert not ready_for_generation(three, 10)


def test_gate_turn_boundary():
    four = completeness(TripCriteria(destination="Tokyo", duration=7, travelers=2, budget=3000))
    assert four.score == 4
    assert not ready_for_generation(four, 6)
    assert ready_for_generation(four, 7)


def test_gate_requires_destination_and_dates():
    no_dates = completeness(TripCriteria(destination="Tokyo", travelers=2, budget=3000, travel_style="luxury"))
    assert no_dates.score == 4
    assert not ready_for_generation(no_dates, 12)

    no_destination = completeness(TripCriteria(duration=3, travelers=2, budget=3000, travel_style="luxury"))
    assert not ready_for_generation(no_destination, 12)


def test_trip_length_prefers_duration_then_date_span():
    assert trip_length(TripCriteria(duration=4, start_date="2026-05-01", end_date="2026-05-10")) == 4
    assert trip_length(TripCriteria(start_date="2026-05-01", end_date="2026-05-03")) == 3
    assert trip_length(TripCriteria(start_date="2026-05-01")) is None


def test_missing_details_follow_question_priority():
    criteria = TripCriteria(destination="Oslo", budget=1500)
    assert missing_details(criteria) == ["dates", "travelers", "style", "activities"]
    assert next_question(criteria) == "When are you planning to travel?"
    assert next_question(_full_criteria(activities=["nature"])) is None
