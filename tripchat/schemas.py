from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

TRAVEL_STYLES: Tuple[str, ...] = (
    "luxury",
    "budget",
    "adventure",
    "family",
    "romantic",
    "business",
    "cultural",
    "relaxation",
)
ACTIVITY_VOCABULARY: Tuple[str, ...] = (
    "food",
    "culture",
    "adventure",
    "relaxation",
    "nightlife",
    "shopping",
    "nature",
    "history",
    "art",
    "sports",
)
ACCOMMODATION_TYPES: Tuple[str, ...] = ("hotel", "airbnb", "resort", "hostel", "boutique", "luxury")

TravelStyle = Literal["luxury", "budget", "adventure", "family", "romantic", "business", "cultural", "relaxation"]
AccommodationType = Literal["hotel", "airbnb", "resort", "hostel", "boutique", "luxury"]
TravelCategory = Literal["accommodation", "restaurant", "activity", "attraction", "transportation"]
ConversationStep = Literal[
    "initial_query",
    "gathering_requirements",
    "generating_itinerary",
    "showing_results",
    "completed",
]


def _clean_tokens(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    tokens: List[str] = []
    for item in value:
        if item is None:
            continue
        token = str(item).strip()
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def _parse_amount(value: Any) -> Optional[float]:
    """Read an LLM-style amount ("$1,200", "Free", 50) as a float, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.replace(",", "").replace("$", "").strip()
        if text.lower() == "free":
            return 0.0
        value = text
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ------- Criteria -------
class TripCriteria(BaseModel):
    """Trip requirements accumulated across a conversation.

    Every field is optional so the same model carries a partial extraction.
    Validation is lenient: values outside the controlled vocabularies are
    dropped instead of failing the whole record, since the extractor is a
    language model.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    destination: Optional[str] = None
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    duration: Optional[int] = None
    budget: Optional[float] = None
    travelers: Optional[int] = None
    travel_style: Optional[TravelStyle] = Field(None, alias="travelStyle")
    activities: List[str] = Field(default_factory=list)
    accommodation_type: Optional[AccommodationType] = Field(None, alias="accommodationType")
    dietary_restrictions: List[str] = Field(default_factory=list, alias="dietaryRestrictions")
    accessibility: List[str] = Field(default_factory=list)

    @field_validator("destination", mode="before")
    @classmethod
    def _strip_destination(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Optional[date]:
        if value is None or isinstance(value, date):
            return value.date() if isinstance(value, datetime) else value
        text = str(value).strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            try:
                return datetime.strptime(text[:10], "%Y-%m-%d").date()
            except ValueError:
                return None

    @field_validator("duration", "travelers", mode="before")
    @classmethod
    def _positive_int(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            number = int(float(value))
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None

    @field_validator("budget", mode="before")
    @classmethod
    def _non_negative_budget(cls, value: Any) -> Optional[float]:
        number = _parse_amount(value)
        return number if number is not None and number >= 0 else None

    @field_validator("travel_style", mode="before")
    @classmethod
    def _known_style(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        token = str(value).strip().lower()
        return token if token in TRAVEL_STYLES else None

    @field_validator("accommodation_type", mode="before")
    @classmethod
    def _known_accommodation(cls, value: Any) -> Optional[str]:
        if isinstance(value, list):
            # older payloads store a preference list; the first known entry wins
            value = next((v for v in value if str(v).strip().lower() in ACCOMMODATION_TYPES), None)
        if value is None:
            return None
        token = str(value).strip().lower()
        return token if token in ACCOMMODATION_TYPES else None

    @field_validator("activities", mode="before")
    @classmethod
    def _known_activities(cls, value: Any) -> List[str]:
        lowered = _clean_tokens([tok.lower() for tok in _clean_tokens(value)])
        return [t for t in lowered if t in ACTIVITY_VOCABULARY]

    @field_validator("dietary_restrictions", "accessibility", mode="before")
    @classmethod
    def _token_list(cls, value: Any) -> List[str]:
        return _clean_tokens(value)


class CriteriaExtraction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    criteria: TripCriteria = Field(default_factory=TripCriteria)
    confidence: float = 0.0
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return min(1.0, max(0.0, number))

    @field_validator("missing_info", mode="before")
    @classmethod
    def _missing_list(cls, value: Any) -> List[str]:
        return _clean_tokens(value)


# ------- Search results -------
class RawSearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    title: str = ""
    url: str
    published_date: str = Field("", alias="publishedDate")
    author: str = "Unknown"
    score: float = 0.0
    text: str = ""
    highlights: List[str] = Field(default_factory=list)
    highlight_scores: List[float] = Field(default_factory=list, alias="highlightScores")

    @field_validator("title", "text", "published_date", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("author", mode="before")
    @classmethod
    def _author(cls, value: Any) -> str:
        return str(value) if value else "Unknown"

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> float:
        return 0.0 if value is None else value

    @field_validator("highlights", "highlight_scores", mode="before")
    @classmethod
    def _none_as_list(cls, value: Any) -> Any:
        return [] if value is None else value


class TravelItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str = Field(..., max_length=400)
    url: str
    source: str
    category: TravelCategory = "attraction"
    location: str
    rating: Optional[float] = Field(None, ge=0, le=5)
    price_range: Optional[str] = Field(None, alias="priceRange")
    address: Optional[str] = None
    hours: Optional[str] = None
    contact: Optional[str] = None


# ------- Generated trip -------
class ItineraryActivity(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    time: str = ""
    title: str
    description: str = ""
    location: str = ""
    category: str = "activity"
    duration: Optional[str] = None
    cost: Optional[float] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    booking_url: Optional[str] = Field(None, alias="bookingUrl")
    tips: Optional[str] = None

    @field_validator("duration", "time", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("cost", mode="before")
    @classmethod
    def _lenient_cost(cls, value: Any) -> Optional[float]:
        number = _parse_amount(value)
        return number if number is not None and number >= 0 else None

    @field_validator("rating", mode="before")
    @classmethod
    def _lenient_rating(cls, value: Any) -> Optional[float]:
        number = _parse_amount(value)
        return number if number is not None and 0 <= number <= 5 else None


class ItineraryDay(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    date: Optional[str] = None
    day_number: int = Field(..., alias="dayNumber")
    theme: str = ""
    activities: List[ItineraryActivity] = Field(default_factory=list)


class BudgetBreakdown(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    accommodation: float = 0.0
    food: float = 0.0
    activities: float = 0.0
    transportation: float = 0.0

    @field_validator("accommodation", "food", "activities", "transportation", mode="before")
    @classmethod
    def _lenient_amount(cls, value: Any) -> float:
        return _parse_amount(value) or 0.0


class GeneratedTrip(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    title: str
    summary: str = ""
    days: List[ItineraryDay] = Field(..., min_length=1)
    total_estimated_cost: float = Field(0.0, alias="totalEstimatedCost")
    packing_tips: List[str] = Field(default_factory=list, alias="packingTips")
    local_tips: List[str] = Field(default_factory=list, alias="localTips")
    budget_breakdown: BudgetBreakdown = Field(default_factory=BudgetBreakdown, alias="budgetBreakdown")

    @field_validator("total_estimated_cost", mode="before")
    @classmethod
    def _lenient_total(cls, value: Any) -> float:
        return _parse_amount(value) or 0.0


# ------- Conversation -------
class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ConversationSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    original_query: str = Field(..., alias="originalQuery")
    current_step: ConversationStep = Field("initial_query", alias="currentStep")
    extracted_criteria: TripCriteria = Field(default_factory=TripCriteria, alias="extractedCriteria")
    pending_questions: List[str] = Field(default_factory=list, alias="pendingQuestions")
    conversation_history: List[ChatTurn] = Field(default_factory=list, alias="conversationHistory")
    generated_trip: Optional[GeneratedTrip] = Field(None, alias="generatedTrip")


class AssistantReply(BaseModel):
    response: str
    needs_more_info: bool = True
    suggested_questions: List[str] = Field(default_factory=list)


# ------- HTTP payloads -------
class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    conversation_id: Optional[str] = Field(None, alias="conversationId")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Please provide a message")
        return value


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    response: str
    conversation_id: str = Field(..., alias="conversationId")
    current_step: ConversationStep = Field(..., alias="currentStep")
    needs_more_info: bool = Field(True, alias="needsMoreInfo")
    generated_trip: Optional[GeneratedTrip] = Field(None, alias="generatedTrip")
    suggested_questions: List[str] = Field(default_factory=list, alias="suggestedQuestions")


# ------- Stored trips -------
class TripPreferences(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    accommodation_type: List[str] = Field(default_factory=list, alias="accommodationType")
    activities: List[str] = Field(default_factory=list)
    transportation: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list, alias="dietaryRestrictions")
    accessibility: List[str] = Field(default_factory=list)


class TripDraft(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="userId")
    title: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    budget: Optional[float] = Field(None, ge=0)
    currency: str = "USD"
    travelers: int = Field(1, ge=1)
    travel_style: Optional[TravelStyle] = Field(None, alias="travelStyle")
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    itinerary: Optional[GeneratedTrip] = None
    status: Literal["draft", "confirmed", "completed"] = "draft"


class TripRecord(TripDraft):
    id: int
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
