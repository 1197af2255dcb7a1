import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from openai import APIConnectionError

from tripchat import llm
from tripchat.errors import ConfigurationError, DraftingFailure
from tripchat.schemas import ChatTurn, GeneratedTrip, TravelItem, TripCriteria

SAMPLE_TRIP = {
    "title": "Tokyo in a Week",
    "summary": "Food, temples and neon.",
    "days": [
        {
            "date": "2026-04-01",
            "dayNumber": 1,
            "theme": "Arrival & Shinjuku",
            "activities": [
                {
                    "time": "15:00",
                    "title": "Check in",
                    "description": "Drop bags at the hotel",
                    "location": "Shinjuku",
                    "category": "accommodation",
                    "duration": 1,
                    "cost": 0,
                }
            ],
        }
    ],
    "totalEstimatedCost": 2800,
    "packingTips": ["Comfortable shoes"],
    "localTips": ["Carry cash"],
    "budgetBreakdown": {"accommodation": 1200, "food": 700, "activities": 500, "transportation": 400},
}


class _StubCompletions:
    def __init__(self, content: Any = None, error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _install(monkeypatch, content: Any = None, error: Exception | None = None) -> _StubCompletions:
    completions = _StubCompletions(content, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(llm, "_client_for", lambda api_key: client)
    return completions


def _connection_error() -> APIConnectionError:
    import httpx

    return APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


def test_extract_parses_fenced_json(monkeypatch):
    payload = {
        "criteria": {"destination": "Tokyo", "duration": 7, "activities": ["food", "karaoke"]},
        "confidence": 1.4,
        "missingInfo": ["budget", "travelers"],
    }
    completions = _install(monkeypatch, "```json\n" + json.dumps(payload) + "\n```")

    result = llm.extract_trip_criteria("I want a week in Tokyo")

    assert result.criteria.destination == "Tokyo"
    assert result.criteria.duration == 7
    assert result.criteria.activities == ["food"]
    assert result.confidence == 1.0
    assert result.missing_info == ["budget", "travelers"]
    assert completions.calls[0]["messages"][1] == {"role": "user", "content": "I want a week in Tokyo"}


def test_extract_fails_soft_on_invalid_json(monkeypatch):
    _install(monkeypatch, "Sure! Tokyo sounds great.")

    result = llm.extract_trip_criteria("Tokyo please")

    assert result.criteria == TripCriteria()
    assert result.confidence == 0
    assert result.missing_info == [llm.UNPARSABLE_NOTE]


def test_extract_fails_soft_without_api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "your_openai_api_key_here")

    result = llm.extract_trip_criteria("Tokyo please")

    assert result.criteria == TripCriteria()
    assert result.missing_info == [llm.MISSING_KEY_NOTE]


def test_draft_returns_generated_trip(monkeypatch):
    completions = _install(monkeypatch, json.dumps(SAMPLE_TRIP))
    item = TravelItem(
        id="1",
        title="Park Hyatt",
        description="Hotel above Shinjuku",
        url="https://www.booking.com/park-hyatt",
        source="Booking.com",
        category="accommodation",
        location="Tokyo",
        rating=4.7,
    )
    criteria = TripCriteria(destination="Tokyo", duration=7, budget=3000, travelers=2)

    trip = llm.draft_itinerary(criteria, [item])

    assert isinstance(trip, GeneratedTrip)
    assert trip.days[0].day_number == 1
    assert trip.days[0].activities[0].duration == "1"
    assert trip.budget_breakdown.food == 700
    prompt = completions.calls[0]["messages"][1]["content"]
    assert "Create a 7-day itinerary for Tokyo" in prompt
    assert "Park Hyatt (accommodation)" in prompt
    assert "Rating: 4.7" in prompt


def test_draft_rejects_malformed_output(monkeypatch):
    _install(monkeypatch, json.dumps({"title": "No days"}))
    with pytest.raises(DraftingFailure):
        llm.draft_itinerary(TripCriteria(destination="Tokyo"), [])


def test_draft_wraps_upstream_unavailability(monkeypatch):
    _install(monkeypatch, error=_connection_error())
    with pytest.raises(DraftingFailure):
        llm.draft_itinerary(TripCriteria(destination="Tokyo"), [])


def test_draft_without_key_is_configuration_error(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        llm.draft_itinerary(TripCriteria(destination="Tokyo"), [])


def test_reply_asks_early_questions_and_suggests_next(monkeypatch):
    completions = _install(monkeypatch, "Great! When are you planning to travel?")
    history = [ChatTurn(role="user", content="Somewhere warm")]

    reply = llm.compose_reply(history, "Somewhere warm", TripCriteria(destination="Bali"), None, 1)

    assert reply.response == "Great! When are you planning to travel?"
    assert reply.needs_more_info
    assert reply.suggested_questions == ["When are you planning to travel?"]
    messages = completions.calls[0]["messages"]
    assert "Do not present a trip yet" in messages[0]["content"]
    # latest message already ends the history and is not repeated
    assert [m["role"] for m in messages] == ["system", "user"]


def test_reply_presents_generated_trip(monkeypatch):
    completions = _install(monkeypatch, "Here is your trip!")
    trip = GeneratedTrip.model_validate(SAMPLE_TRIP)

    reply = llm.compose_reply([], "Sounds good", TripCriteria(destination="Tokyo"), trip, 8)

    assert not reply.needs_more_info
    assert '"Tokyo in a Week"' in completions.calls[0]["messages"][0]["content"]
    assert completions.calls[0]["messages"][-1] == {"role": "user", "content": "Sounds good"}


def test_reply_falls_back_on_failure(monkeypatch):
    _install(monkeypatch, error=_connection_error())

    reply = llm.compose_reply([], "hello", TripCriteria(), None, 1)

    assert reply.response == llm.FALLBACK_REPLY
    assert reply.needs_more_info


def test_reply_without_key_returns_configuration_apology(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    reply = llm.compose_reply([], "hello", TripCriteria(), None, 1)

    assert reply.response == llm.MISSING_KEY_REPLY


def test_draft_uses_date_span_when_duration_missing(monkeypatch):
    completions = _install(monkeypatch, json.dumps(SAMPLE_TRIP))
    criteria = TripCriteria(destination="Lisbon", start_date="2026-05-01", end_date="2026-05-08")

    llm.draft_itinerary(criteria, [])

    assert "Create a 8-day itinerary for Lisbon" in completions.calls[0]["messages"][1]["content"]


def test_draft_accepts_loosely_formatted_amounts(monkeypatch):
    reply = json.loads(json.dumps(SAMPLE_TRIP))
    activity = reply["days"][0]["activities"][0]
    activity["cost"] = "Free"
    activity["rating"] = "great"
    reply["days"][0]["activities"].append(dict(activity, title="Dinner", cost="$1,250", rating=7))
    reply["totalEstimatedCost"] = "$2,800"
    reply["budgetBreakdown"] = {"accommodation": "$1,200", "food": "varies", "activities": 500}
    _install(monkeypatch, json.dumps(reply))

    trip = llm.draft_itinerary(TripCriteria(destination="Tokyo"), [])

    first, second = trip.days[0].activities
    assert first.cost == 0.0
    assert first.rating is None
    assert second.cost == 1250.0
    assert second.rating is None
    assert trip.total_estimated_cost == 2800.0
    assert trip.budget_breakdown.accommodation == 1200.0
    assert trip.budget_breakdown.food == 0.0
    assert trip.budget_breakdown.transportation == 0.0
