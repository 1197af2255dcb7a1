"""Conversation and trip stores.

The in-memory stores back the default app and the tests. Production
deployments inject their own ``ConversationStore``.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol

from tripchat.errors import TripNotFound
from tripchat.schemas import ConversationSession, TripDraft, TripRecord


class ConversationStore(Protocol):
    async def get(self, session_id: str) -> Optional[ConversationSession]: ...

    async def put(self, session: ConversationSession) -> None: ...


class InMemoryConversationStore:
    """Stores deep copies, so callers mutate their own session until ``put``."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ConversationSession] = {}

    async def get(self, session_id: str) -> Optional[ConversationSession]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session is not None else None

    async def put(self, session: ConversationSession) -> None:
        self._sessions[session.id] = session.model_copy(deep=True)


class InMemoryTripStore:
    def __init__(self) -> None:
        self._trips: Dict[int, TripRecord] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def create(self, draft: TripDraft) -> TripRecord:
        async with self._lock:
            now = datetime.now(timezone.utc)
            record = TripRecord(
                **draft.model_dump(),
                id=self._next_id,
                created_at=now,
                updated_at=now,
            )
            self._trips[record.id] = record
            self._next_id += 1
            return record

    async def get(self, trip_id: int) -> Optional[TripRecord]:
        return self._trips.get(trip_id)

    async def list(self, user_id: Optional[int] = None) -> List[TripRecord]:
        trips = sorted(self._trips.values(), key=lambda t: t.id)
        if user_id is None:
            return trips
        return [t for t in trips if t.user_id == user_id]

    async def update(self, trip_id: int, changes: Mapping[str, Any]) -> TripRecord:
        """Apply a partial update; raises ``ValidationError`` on bad input."""
        async with self._lock:
            existing = self._trips.get(trip_id)
            if existing is None:
                raise TripNotFound(trip_id)
            protected = {"id", "createdAt", "created_at", "updatedAt", "updated_at"}
            payload = existing.model_dump(by_alias=True)
            payload.update({k: v for k, v in changes.items() if k not in protected})
            payload["updatedAt"] = datetime.now(timezone.utc)
            record = TripRecord.model_validate(payload)
            self._trips[trip_id] = record
            return record

    async def delete(self, trip_id: int) -> bool:
        async with self._lock:
            return self._trips.pop(trip_id, None) is not None
