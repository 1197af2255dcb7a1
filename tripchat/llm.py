# tripchat/llm.py
import json
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from tripchat.config import get_settings
from tripchat.criteria import GENERATION_TURN_FLOOR, missing_details, next_question, trip_length
from tripchat.errors import ConfigurationError, DraftingFailure, ExtractionFailure
from tripchat.log import get_logger
from tripchat.schemas import (
    ACCOMMODATION_TYPES,
    ACTIVITY_VOCABULARY,
    TRAVEL_STYLES,
    AssistantReply,
    ChatTurn,
    CriteriaExtraction,
    GeneratedTrip,
    TravelItem,
    TripCriteria,
)

logger = get_logger(__name__)

MISSING_KEY_NOTE = "OpenAI API key is not configured properly. Please check your .env file."
UNPARSABLE_NOTE = "Unable to parse trip planning criteria"
MISSING_KEY_REPLY = (
    "I'm unable to process your request because the OpenAI API key is not configured properly. "
    "Please contact the administrator to set up the API key."
)
FALLBACK_REPLY = "I'm experiencing some technical difficulties. Please try rephrasing your travel request."

EXTRACTION_SYSTEM = f"""You are an AI travel planning assistant. Extract travel planning criteria from user messages and identify what information might be missing.

Available travel styles: {", ".join(TRAVEL_STYLES)}
Available activities: {", ".join(ACTIVITY_VOCABULARY)}
Available accommodation types: {", ".join(ACCOMMODATION_TYPES)}

Extract the following information from the user's message:
- destination: Where they want to travel
- startDate: When they want to start (YYYY-MM-DD format if specific)
- endDate: When they want to end (YYYY-MM-DD format if specific)
- budget: Total budget amount (number only)
- travelers: Number of people traveling
- travelStyle: Style of travel
- activities: Array of activities they're interested in
- accommodationType: Type of accommodation preferred
- duration: Number of days (if mentioned)
- dietaryRestrictions: Array of dietary needs
- accessibility: Array of accessibility needs

Return ONLY a JSON object with:
{{
  "criteria": {{ extracted criteria object }},
  "confidence": number between 0-1,
  "missingInfo": ["list of important missing information"]
}}
"""

ITINERARY_SYSTEM = """You are an expert travel planner. Create a detailed, personalized itinerary based on the user's criteria and the travel information provided.
Use the travel information to recommend real places, restaurants and activities.
Return ONLY a JSON object with this structure:
{
  "title": "Trip title",
  "summary": "Brief trip overview",
  "days": [
    {
      "date": "YYYY-MM-DD",
      "dayNumber": 1,
      "theme": "Day theme",
      "activities": [
        {
          "time": "09:00",
          "title": "Activity name",
          "description": "Detailed description",
          "location": "Specific location",
          "category": "accommodation|food|activity|transport",
          "duration": "2 hours",
          "cost": 50,
          "address": "Full address",
          "rating": 4.5,
          "bookingUrl": "URL if available",
          "tips": "Local tips or notes"
        }
      ]
    }
  ],
  "totalEstimatedCost": 1500,
  "packingTips": ["Essential items to pack"],
  "localTips": ["Important local information"],
  "budgetBreakdown": {"accommodation": 600, "food": 400, "activities": 300, "transportation": 200}
}
"""

ITINERARY_TEMPLATE = """Create a {days}-day itinerary for {destination} with these preferences:
- Budget: {budget}
- Travelers: {travelers}
- Style: {style}
- Interests: {interests}
- Accommodation: {accommodation}

Available travel information:
{listing}

Create a realistic, engaging itinerary that stays within budget and preferences.
"""

RESPONDER_SYSTEM = """You are Trips, a helpful AI travel planning assistant. Ask ONE focused question at a time to understand the user's travel needs.

Rules:
1. Ask only one question per response.
2. Respond naturally to what the user said, then ask your question.
3. Ask for the most important missing information first.

Current conversation state:
- Message count: {turn_count}
- User's latest message: "{message}"
- Information gathered: {criteria}

{mode}
"""

EARLY_MODE = """Do not present a trip yet; keep gathering information.
Priority order: destination, travel dates or trip length, number of travelers, budget, travel style, interests.
Acknowledge what the user said, then ask ONE clear question about the most important missing piece."""

PRESENT_MODE = """A complete itinerary was generated for these criteria: "{title}".
Present it clearly, explain why it matches the user's criteria and highlight the key experiences."""

GATHER_MODE = """Ask ONE more specific question to get the remaining details.
Missing information:
{missing}"""

_MISSING_LABELS = {
    "destination": "Destination",
    "dates": "Travel dates or duration",
    "travelers": "Number of travelers",
    "budget": "Budget",
    "style": "Travel style/vibe",
    "activities": "Interests and activities",
}

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


@lru_cache(maxsize=4)
def _client_for(api_key: str) -> OpenAI:
    return OpenAI(api_key=api_key)


def _require_client() -> OpenAI:
    api_key = get_settings().openai_api_key
    if not api_key:
        raise ConfigurationError("OpenAI API key is not configured. Please set OPENAI_API_KEY in your .env file.")
    return _client_for(api_key)


def clean_json_response(content: str) -> str:
    """Strip markdown code fences some models wrap around JSON."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", content.strip())).strip()


def _complete(messages: List[Dict[str, str]], *, temperature: float, max_tokens: int) -> str:
    client = _require_client()
    model = get_settings().model
    logger.info("Invoking LLM model %s (%d messages)", model, len(messages))
    resp = client.chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return resp.choices[0].message.content or ""


def extract_trip_criteria(message: str) -> CriteriaExtraction:
    """Extract criteria from one user message. Never raises."""
    try:
        raw = _complete(
            [
                {"role": "system", "content": EXTRACTION_SYSTEM},
                {"role": "user", "content": message},
            ],
            temperature=0.1,
            max_tokens=500,
        )
        parsed = json.loads(clean_json_response(raw) or "{}")
        if not isinstance(parsed, dict):
            raise ExtractionFailure("extraction payload is not a JSON object")
        extraction = CriteriaExtraction.model_validate(
            {
                "criteria": parsed.get("criteria") or {},
                "confidence": parsed.get("confidence") or 0,
                "missingInfo": parsed.get("missingInfo") or [],
            }
        )
        logger.info(
            "Extracted criteria fields %s (confidence %.2f)",
            sorted(extraction.criteria.model_dump(exclude_defaults=True).keys()),
            extraction.confidence,
        )
        return extraction
    except ConfigurationError:
        logger.error("Criteria extraction skipped: OpenAI API key not configured")
        return CriteriaExtraction(missing_info=[MISSING_KEY_NOTE])
    except Exception:
        logger.warning("Criteria extraction failed; continuing with empty criteria", exc_info=True)
        return CriteriaExtraction(missing_info=[UNPARSABLE_NOTE])


def _format_listing(items: Sequence[TravelItem]) -> str:
    parts = []
    for item in items:
        parts.append(
            f"- {item.title} ({item.category})\n"
            f"  Location: {item.location}\n"
            f"  Rating: {item.rating if item.rating is not None else 'N/A'}\n"
            f"  Price: {item.price_range or 'N/A'}\n"
            f"  Description: {item.description}\n"
            f"  URL: {item.url}"
        )
    return "\n".join(parts) if parts else "(no travel information found)"


def draft_itinerary(criteria: TripCriteria, items: Sequence[TravelItem]) -> GeneratedTrip:
    """Draft a full itinerary.

    Raises ``ConfigurationError`` without credentials and ``DraftingFailure``
    when the model is unreachable or its reply does not fit ``GeneratedTrip``.
    """
    user_prompt = ITINERARY_TEMPLATE.format(
        days=trip_length(criteria) or 3,
        destination=criteria.destination,
        budget=f"${criteria.budget:g}" if criteria.budget is not None else "flexible",
        travelers=criteria.travelers or 1,
        style=criteria.travel_style or "balanced",
        interests=", ".join(criteria.activities) or "general sightseeing",
        accommodation=criteria.accommodation_type or "hotel",
        listing=_format_listing(items),
    )
    try:
        raw = _complete(
            [
                {"role": "system", "content": ITINERARY_SYSTEM},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.7,
            max_tokens=3000,
        )
    except OpenAIError as exc:
        raise DraftingFailure(f"Itinerary drafter unavailable: {exc}") from exc

    try:
        trip = GeneratedTrip.model_validate(json.loads(clean_json_response(raw)))
    except (ValueError, ValidationError) as exc:
        raise DraftingFailure("Itinerary drafter returned output that is not a trip") from exc
    logger.info("Drafted itinerary '%s' with %d days from %d travel items", trip.title, len(trip.days), len(items))
    return trip


def _suggested_questions(criteria: TripCriteria) -> List[str]:
    question = next_question(criteria)
    return [question] if question else []


def compose_reply(
    history: Sequence[ChatTurn],
    latest_message: str,
    criteria: TripCriteria,
    generated_trip: Optional[GeneratedTrip] = None,
    turn_count: Optional[int] = None,
) -> AssistantReply:
    """Write the assistant's next conversational turn. Never raises."""
    count = turn_count if turn_count is not None else len(history)
    early = count <= GENERATION_TURN_FLOOR
    if early:
        mode = EARLY_MODE
    elif generated_trip is not None:
        mode = PRESENT_MODE.format(title=generated_trip.title)
    else:
        missing = "\n".join(f"- {_MISSING_LABELS[name]}" for name in missing_details(criteria)) or "- (nothing)"
        mode = GATHER_MODE.format(missing=missing)

    system_prompt = RESPONDER_SYSTEM.format(
        turn_count=count,
        message=latest_message,
        criteria=criteria.model_dump_json(by_alias=True, exclude_defaults=True, indent=2),
        mode=mode,
    )
    messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in history)
    if not history or history[-1].role != "user" or history[-1].content != latest_message:
        messages.append({"role": "user", "content": latest_message})

    suggestions = _suggested_questions(criteria)
    needs_more_info = early or generated_trip is None
    try:
        text = _complete(messages, temperature=0.7, max_tokens=800)
    except ConfigurationError:
        logger.error("Reply skipped: OpenAI API key not configured")
        return AssistantReply(
            response=MISSING_KEY_REPLY,
            needs_more_info=True,
            suggested_questions=["Please configure the OpenAI API key to continue."],
        )
    except Exception:
        logger.warning("Reply generation failed; sending fallback apology", exc_info=True)
        return AssistantReply(
            response=FALLBACK_REPLY,
            needs_more_info=True,
            suggested_questions=["Where would you like to travel?"],
        )

    return AssistantReply(
        response=text.strip() or "I'm sorry, I couldn't process your request.",
        needs_more_info=needs_more_info,
        suggested_questions=suggestions,
    )
