"""Turn-by-turn state machine for a trip planning conversation."""
from __future__ import annotations

import asyncio
import secrets
import string
import time
import weakref
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from tripchat import llm
from tripchat.criteria import completeness, merge_criteria, ready_for_generation
from tripchat.errors import ConversationClosed, InvalidMessage, SessionNotFound, TripChatError
from tripchat.log import get_logger
from tripchat.retrieval import TravelRetriever
from tripchat.schemas import (
    AssistantReply,
    ChatTurn,
    ConversationSession,
    ConversationStep,
    CriteriaExtraction,
    GeneratedTrip,
    TravelItem,
    TripCriteria,
)
from tripchat.storage import ConversationStore, InMemoryConversationStore

logger = get_logger(__name__)

CriteriaExtractor = Callable[[str], CriteriaExtraction]
ItineraryDrafter = Callable[[TripCriteria, Sequence[TravelItem]], GeneratedTrip]
Responder = Callable[..., AssistantReply]

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_session_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"trip_planning_{int(time.time() * 1000)}_{suffix}"


@dataclass
class TurnOutcome:
    reply: str
    conversation_id: str
    current_step: ConversationStep
    # only set on the turn the trip was drafted
    generated_trip: Optional[GeneratedTrip] = None
    suggested_questions: List[str] = field(default_factory=list)
    needs_more_info: bool = True


class TripPlanner:
    """Owns the planning conversation lifecycle.

    Collaborators are injected; the defaults talk to OpenAI and Exa. Turns
    for the same conversation id are serialised with a per-id lock, so the
    store only ever sees complete read-modify-write cycles.
    """

    def __init__(
        self,
        store: Optional[ConversationStore] = None,
        *,
        extractor: CriteriaExtractor = llm.extract_trip_criteria,
        drafter: ItineraryDrafter = llm.draft_itinerary,
        responder: Responder = llm.compose_reply,
        retriever: Optional[TravelRetriever] = None,
    ):
        self.store = store if store is not None else InMemoryConversationStore()
        self.extractor = extractor
        self.drafter = drafter
        self.responder = responder
        self.retriever = retriever if retriever is not None else TravelRetriever()
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def handle_message(self, message: str, conversation_id: Optional[str] = None) -> TurnOutcome:
        text = (message or "").strip()
        if not text:
            raise InvalidMessage("Please provide a message")
        if conversation_id is None:
            return await self._run_turn(None, text)
        async with self._lock_for(conversation_id):
            return await self._run_turn(conversation_id, text)

    async def get_session(self, conversation_id: str) -> ConversationSession:
        session = await self.store.get(conversation_id)
        if session is None:
            raise SessionNotFound(conversation_id)
        return session

    async def complete(self, conversation_id: str) -> ConversationSession:
        """External close action: ``showing_results`` -> ``completed``."""
        async with self._lock_for(conversation_id):
            session = await self.get_session(conversation_id)
            if session.current_step != "showing_results":
                raise ConversationClosed(conversation_id, session.current_step)
            session.current_step = "completed"
            await self.store.put(session)
            logger.info("Conversation %s completed", conversation_id)
            return session

    async def _run_turn(self, conversation_id: Optional[str], text: str) -> TurnOutcome:
        if conversation_id is None:
            extraction = await self._extract(text)
            session = ConversationSession(
                id=new_session_id(),
                original_query=text,
                current_step="initial_query",
                extracted_criteria=extraction.criteria,
                pending_questions=extraction.missing_info,
            )
            session.conversation_history.append(ChatTurn(role="user", content=text))
            logger.info("Started conversation %s", session.id)
        else:
            session = await self.get_session(conversation_id)
            if session.current_step == "completed":
                raise ConversationClosed(conversation_id, session.current_step)
            session.conversation_history.append(ChatTurn(role="user", content=text))
            extraction = await self._extract(text)
            session.extracted_criteria = merge_criteria(session.extracted_criteria, extraction.criteria)

        criteria = session.extracted_criteria
        signals = completeness(criteria)
        turn_count = len(session.conversation_history)
        gate_open = ready_for_generation(signals, turn_count)
        logger.info(
            "Conversation %s: turn %d, criteria score %d/5, gate %s",
            session.id,
            turn_count,
            signals.score,
            "open" if gate_open else "closed",
        )

        generated: Optional[GeneratedTrip] = None
        if gate_open:
            session.current_step = "generating_itinerary"
            generated = await self._generate(session.id, criteria)

        if generated is not None:
            session.generated_trip = generated
            session.current_step = "showing_results"
        else:
            session.current_step = "gathering_requirements"

        reply = await self._respond(session, text, generated, turn_count)
        session.conversation_history.append(ChatTurn(role="assistant", content=reply.response))
        if reply.suggested_questions:
            session.pending_questions = list(reply.suggested_questions)
        await self.store.put(session)

        return TurnOutcome(
            reply=reply.response,
            conversation_id=session.id,
            current_step=session.current_step,
            generated_trip=generated,
            suggested_questions=list(reply.suggested_questions),
            needs_more_info=reply.needs_more_info,
        )

    async def _extract(self, text: str) -> CriteriaExtraction:
        try:
            return await asyncio.to_thread(self.extractor, text)
        except Exception:
            logger.warning("Criteria extractor raised; treating as empty extraction", exc_info=True)
            return CriteriaExtraction(missing_info=[llm.UNPARSABLE_NOTE])

    async def _generate(self, session_id: str, criteria: TripCriteria) -> Optional[GeneratedTrip]:
        """Retrieve then draft. Any failure keeps the conversation gathering."""
        try:
            items = await self.retriever.retrieve(criteria)
            logger.info("Conversation %s: drafting from %d travel items", session_id, len(items))
            return await asyncio.to_thread(self.drafter, criteria, items)
        except TripChatError as exc:
            logger.warning("Conversation %s: trip generation failed (%s); still gathering", session_id, exc)
        except Exception:
            logger.exception("Conversation %s: unexpected error during trip generation", session_id)
        return None

    async def _respond(
        self,
        session: ConversationSession,
        text: str,
        generated: Optional[GeneratedTrip],
        turn_count: int,
    ) -> AssistantReply:
        try:
            return await asyncio.to_thread(
                self.responder,
                list(session.conversation_history),
                text,
                session.extracted_criteria,
                generated,
                turn_count,
            )
        except Exception:
            logger.exception("Conversation %s: responder raised; sending fallback reply", session.id)
            return AssistantReply(response=llm.FALLBACK_REPLY)
