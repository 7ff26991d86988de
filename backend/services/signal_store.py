"""
Signal store: durable, append-only records for conversations, turns and
engagement samples, plus read access to the product catalog and lead
persistence.

Every successful mutation is announced to subscribers as a StoreEvent so
downstream consumers (lead qualification, live dashboards) can refresh
without polling. Subscribers run after the write is durable; a failing
subscriber is logged and never fails the write.
"""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from models.conversation import Conversation, Turn, ROLES
from models.engagement import EngagementSample
from models.lead import Lead
from models.product import Product
from services.errors import ConversationNotFound

logger = logging.getLogger(__name__)

# Event kinds
CONVERSATION_CREATED = "conversation_created"
VISITOR_NAME_SET = "visitor_name_set"
TURN_APPENDED = "turn_appended"
ENGAGEMENT_SAMPLE_APPENDED = "engagement_sample_appended"
LEAD_SAVED = "lead_saved"


@dataclass
class StoreEvent:
    """Change notification emitted after a durable write."""
    kind: str
    conversation_id: str
    record: Any


Subscriber = Callable[[StoreEvent], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Generate a short unique identifier such as ``conv_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class SignalStore(ABC):
    """Contract shared by every store backend."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a change listener.

        Args:
            callback: Called with a StoreEvent after every durable write

        Returns:
            Function that removes the registration
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, kind: str, conversation_id: str, record: Any) -> None:
        event = StoreEvent(kind=kind, conversation_id=conversation_id, record=record)
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    f"Subscriber failed on {kind} for conversation {conversation_id}: {e}",
                    exc_info=True,
                    extra={"conversation_id": conversation_id},
                )

    @staticmethod
    def _check_role(role: str) -> None:
        if role not in ROLES:
            raise ValueError(f"Unknown turn role: {role}")

    # Conversations

    @abstractmethod
    def create_conversation(self, visitor_name: Optional[str] = None) -> Conversation:
        ...

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Return the conversation (without turns) or None if unknown."""

    @abstractmethod
    def set_visitor_name(self, conversation_id: str, visitor_name: str) -> Conversation:
        ...

    @abstractmethod
    def count_conversations(self, since: Optional[datetime] = None) -> int:
        ...

    # Turns

    @abstractmethod
    def append_turn(self, conversation_id: str, role: str, content: str) -> Turn:
        ...

    @abstractmethod
    def list_turns(self, conversation_id: str) -> List[Turn]:
        """Full history, ascending by creation time."""

    @abstractmethod
    def count_turns(self) -> int:
        ...

    # Engagement samples

    @abstractmethod
    def append_engagement_sample(
        self,
        conversation_id: str,
        emotion: str,
        confidence: float,
        engagement_score: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EngagementSample:
        ...

    @abstractmethod
    def list_engagement_samples(self, conversation_id: str) -> List[EngagementSample]:
        ...

    @abstractmethod
    def list_all_engagement_samples(self) -> List[EngagementSample]:
        ...

    # Catalog

    @abstractmethod
    def list_products(self) -> List[Product]:
        """Catalog in catalog order."""

    # Leads

    @abstractmethod
    def get_lead_for_conversation(self, conversation_id: str) -> Optional[Lead]:
        ...

    @abstractmethod
    def save_lead(self, lead: Lead) -> Lead:
        """Insert or update the lead for ``lead.conversation_id``."""

    @abstractmethod
    def list_leads(self) -> List[Lead]:
        """All leads, highest score first."""


class InMemorySignalStore(SignalStore):
    """
    Thread-safe process-local store.

    Used for local development (STORE_BACKEND=memory) and tests. Creation
    timestamps are strictly increasing per conversation so concurrent
    appends keep a total order.
    """

    def __init__(
        self,
        products: Optional[List[Product]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__()
        self._lock = threading.RLock()
        self._clock = clock
        self._conversations: Dict[str, Conversation] = {}
        self._turns: Dict[str, List[Turn]] = {}
        self._samples: Dict[str, List[EngagementSample]] = {}
        self._leads: Dict[str, Lead] = {}
        self._products: List[Product] = list(products or [])
        logger.info(f"InMemorySignalStore initialized with {len(self._products)} products")

    def _next_timestamp(self, previous: List[Any]) -> datetime:
        now = self._clock()
        if previous and now <= previous[-1].created_at:
            now = previous[-1].created_at + timedelta(microseconds=1)
        return now

    def _require_conversation(self, conversation_id: str) -> None:
        if conversation_id not in self._conversations:
            raise ConversationNotFound(conversation_id)

    def create_conversation(self, visitor_name: Optional[str] = None) -> Conversation:
        with self._lock:
            conversation = Conversation(
                conversation_id=generate_id("conv"),
                created_at=self._clock(),
                visitor_name=visitor_name or None,
            )
            self._conversations[conversation.conversation_id] = conversation
            self._turns[conversation.conversation_id] = []
            self._samples[conversation.conversation_id] = []

        logger.info(f"Created new conversation: {conversation.conversation_id}")
        self._notify(CONVERSATION_CREATED, conversation.conversation_id, conversation)
        return replace(conversation)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            return replace(conversation) if conversation else None

    def set_visitor_name(self, conversation_id: str, visitor_name: str) -> Conversation:
        with self._lock:
            self._require_conversation(conversation_id)
            conversation = self._conversations[conversation_id]
            conversation.visitor_name = visitor_name
            snapshot = replace(conversation)

        self._notify(VISITOR_NAME_SET, conversation_id, snapshot)
        return snapshot

    def count_conversations(self, since: Optional[datetime] = None) -> int:
        with self._lock:
            if since is None:
                return len(self._conversations)
            return sum(1 for c in self._conversations.values() if c.created_at >= since)

    def append_turn(self, conversation_id: str, role: str, content: str) -> Turn:
        self._check_role(role)
        with self._lock:
            self._require_conversation(conversation_id)
            turns = self._turns[conversation_id]
            turn = Turn(
                turn_id=generate_id("turn"),
                conversation_id=conversation_id,
                role=role,
                content=content,
                created_at=self._next_timestamp(turns),
            )
            turns.append(turn)

        logger.debug(f"Appended {role} turn to conversation {conversation_id}")
        self._notify(TURN_APPENDED, conversation_id, turn)
        return turn

    def list_turns(self, conversation_id: str) -> List[Turn]:
        with self._lock:
            return list(self._turns.get(conversation_id, []))

    def count_turns(self) -> int:
        with self._lock:
            return sum(len(turns) for turns in self._turns.values())

    def append_engagement_sample(
        self,
        conversation_id: str,
        emotion: str,
        confidence: float,
        engagement_score: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EngagementSample:
        with self._lock:
            self._require_conversation(conversation_id)
            samples = self._samples[conversation_id]
            sample = EngagementSample(
                sample_id=generate_id("smp"),
                conversation_id=conversation_id,
                emotion=emotion,
                confidence=confidence,
                engagement_score=engagement_score,
                created_at=self._next_timestamp(samples),
                metadata=dict(metadata or {}),
            )
            samples.append(sample)

        self._notify(ENGAGEMENT_SAMPLE_APPENDED, conversation_id, sample)
        return sample

    def list_engagement_samples(self, conversation_id: str) -> List[EngagementSample]:
        with self._lock:
            return list(self._samples.get(conversation_id, []))

    def list_all_engagement_samples(self) -> List[EngagementSample]:
        with self._lock:
            samples = [s for group in self._samples.values() for s in group]
        return sorted(samples, key=lambda s: s.created_at)

    def list_products(self) -> List[Product]:
        return list(self._products)

    def get_lead_for_conversation(self, conversation_id: str) -> Optional[Lead]:
        with self._lock:
            lead = self._leads.get(conversation_id)
            return replace(lead) if lead else None

    def save_lead(self, lead: Lead) -> Lead:
        with self._lock:
            existing = self._leads.get(lead.conversation_id)
            if existing:
                # Identity and creation time are fixed once materialized
                lead = replace(lead, lead_id=existing.lead_id, created_at=existing.created_at)
            self._leads[lead.conversation_id] = lead
            snapshot = replace(lead)

        self._notify(LEAD_SAVED, lead.conversation_id, snapshot)
        return snapshot

    def list_leads(self) -> List[Lead]:
        with self._lock:
            leads = [replace(lead) for lead in self._leads.values()]
        return sorted(leads, key=lambda lead: lead.lead_score, reverse=True)
