from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tripchat.config import get_settings
from tripchat.conversation import TripPlanner
from tripchat.errors import (
    ConfigurationError,
    ConversationClosed,
    InvalidMessage,
    SessionNotFound,
    TripNotFound,
)
from tripchat.log import get_logger
from tripchat.schemas import ChatRequest, ChatResponse, TripDraft
from tripchat.storage import InMemoryTripStore

logger = get_logger(__name__)

app = FastAPI(title="Trip Planning Chat API")

# Local UIs (Vite dev server, static builds, notebooks) need CORS; operators
# can narrow it with TRIPCHAT_ALLOWED_ORIGINS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

planner = TripPlanner()
trip_store = InMemoryTripStore()


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(SessionNotFound)
async def _session_not_found(request: Request, exc: SessionNotFound) -> JSONResponse:
    return _failure(404, "Conversation not found")


@app.exception_handler(TripNotFound)
async def _trip_not_found(request: Request, exc: TripNotFound) -> JSONResponse:
    return _failure(404, "Trip not found")


@app.exception_handler(ConversationClosed)
async def _conversation_closed(request: Request, exc: ConversationClosed) -> JSONResponse:
    return _failure(409, str(exc))


@app.exception_handler(InvalidMessage)
async def _invalid_message(request: Request, exc: InvalidMessage) -> JSONResponse:
    return _failure(422, str(exc))


@app.exception_handler(ConfigurationError)
async def _misconfigured(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return _failure(503, str(exc))


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(str(err.get("msg")) for err in exc.errors())
    return _failure(422, messages or "Invalid request")


@app.exception_handler(ValidationError)
async def _bad_payload(request: Request, exc: ValidationError) -> JSONResponse:
    messages = "; ".join(str(err.get("msg")) for err in exc.errors())
    return _failure(422, messages or "Invalid payload")


@app.post("/api/chat")
async def api_chat(body: ChatRequest) -> Dict[str, Any]:
    """Primary endpoint consumed by the chat frontend."""
    outcome = await planner.handle_message(body.message, body.conversation_id)
    response = ChatResponse(
        response=outcome.reply,
        conversation_id=outcome.conversation_id,
        current_step=outcome.current_step,
        needs_more_info=outcome.needs_more_info,
        generated_trip=outcome.generated_trip,
        suggested_questions=outcome.suggested_questions,
    )
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)


@app.get("/api/conversations/{conversation_id}")
async def get_conversation(conversation_id: str) -> Dict[str, Any]:
    session = await planner.get_session(conversation_id)
    return {"success": True, "conversation": session.model_dump(mode="json", by_alias=True)}


@app.post("/api/conversations/{conversation_id}/complete")
async def complete_conversation(conversation_id: str) -> Dict[str, Any]:
    session = await planner.complete(conversation_id)
    return {"success": True, "conversation": session.model_dump(mode="json", by_alias=True)}


@app.post("/api/trips")
async def create_trip(draft: TripDraft) -> Dict[str, Any]:
    trip = await trip_store.create(draft)
    return {"success": True, "trip": trip.model_dump(mode="json", by_alias=True)}


@app.get("/api/trips")
async def list_trips(userId: Optional[int] = None) -> Dict[str, Any]:
    trips = await trip_store.list(userId)
    return {"success": True, "trips": [t.model_dump(mode="json", by_alias=True) for t in trips]}


@app.get("/api/trips/{trip_id}")
async def get_trip(trip_id: int) -> Dict[str, Any]:
    trip = await trip_store.get(trip_id)
    if trip is None:
        raise TripNotFound(trip_id)
    return {"success": True, "trip": trip.model_dump(mode="json", by_alias=True)}


@app.put("/api/trips/{trip_id}")
async def update_trip(trip_id: int, changes: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    trip = await trip_store.update(trip_id, changes)
    return {"success": True, "trip": trip.model_dump(mode="json", by_alias=True)}


@app.delete("/api/trips/{trip_id}")
async def delete_trip(trip_id: int) -> Dict[str, Any]:
    if not await trip_store.delete(trip_id):
        raise TripNotFound(trip_id)
    return {"success": True, "message": "Trip deleted successfully"}
