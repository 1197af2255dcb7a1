"""Error kinds raised by the planning core."""
from __future__ import annotations

from typing import List, Optional


class TripChatError(Exception):
    """Base class for every error the planning core raises on purpose."""


class ConfigurationError(TripChatError):
    """A collaborator credential is missing or still set to its placeholder."""


class InvalidMessage(TripChatError, ValueError):
    """The inbound chat message is empty or otherwise unusable."""


class SessionNotFound(TripChatError):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Conversation not found: {session_id}")


class ConversationClosed(TripChatError):
    """The conversation cannot take this transition from its current step."""

    def __init__(self, session_id: str, step: str) -> None:
        self.session_id = session_id
        self.step = step
        super().__init__(f"Conversation {session_id} is in step '{step}'")


class TripNotFound(TripChatError):
    def __init__(self, trip_id: int) -> None:
        self.trip_id = trip_id
        super().__init__(f"Trip not found: {trip_id}")


class ExtractionFailure(TripChatError):
    """Criteria extraction could not produce a usable result."""


class PerQueryFailure(TripChatError):
    """One search query failed or timed out; the batch carries on without it."""

    def __init__(self, query: str, cause: Optional[BaseException] = None) -> None:
        self.query = query
        self.cause = cause
        reason = type(cause).__name__ if cause is not None else "unknown error"
        super().__init__(f"Search failed for query '{query}' ({reason})")


class RetrievalBatchFailure(TripChatError):
    """Every query of a retrieval batch failed."""

    def __init__(self, failures: List[PerQueryFailure]) -> None:
        self.failures = list(failures)
        super().__init__(f"All {len(self.failures)} search queries failed")


class DraftingFailure(TripChatError):
    """The itinerary drafter returned nothing usable or was unreachable."""
