"""
Lead qualification: keeps each conversation's lead in step with its signals.

The qualifier subscribes to the signal store and recomputes engagement,
contact fields and lead score from stored records whenever a turn, sample
or visitor name is written. When a lead first materializes is an explicit
policy:

- EAGER: as soon as an email or phone number has been captured
- LAZY: only when the conversation is ended, and only with a captured
  email or phone number

Once a lead exists it is re-scored on every later mutation under either
policy.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from models.conversation import VISITOR
from models.engagement import EngagementSummary
from models.lead import ContactInfo, Lead, LeadScore
from services.contact_extractor import ContactExtractor
from services.conversation_locks import ConversationLocks
from services.engagement_aggregator import EngagementAggregator
from services.lead_scorer import LeadScorer
from services.signal_store import (
    SignalStore,
    StoreEvent,
    TURN_APPENDED,
    ENGAGEMENT_SAMPLE_APPENDED,
    VISITOR_NAME_SET,
    generate_id,
    utc_now,
)

logger = logging.getLogger(__name__)

ANONYMOUS = "Anonymous"


class LeadPolicy(str, Enum):
    EAGER = "eager"
    LAZY = "lazy"


@dataclass
class Qualification:
    """Everything derived from a conversation's stored signals."""
    conversation_id: str
    contact: ContactInfo
    engagement: EngagementSummary
    score: LeadScore
    interest: Optional[str]


class LeadQualifier:
    """Re-score conversations on store mutations and maintain their leads."""

    TRIGGER_EVENTS = {TURN_APPENDED, ENGAGEMENT_SAMPLE_APPENDED, VISITOR_NAME_SET}

    def __init__(
        self,
        store: SignalStore,
        policy: LeadPolicy = LeadPolicy.EAGER,
        scorer: Optional[LeadScorer] = None,
        aggregator: Optional[EngagementAggregator] = None,
        extractor: Optional[ContactExtractor] = None,
    ):
        self.store = store
        self.policy = LeadPolicy(policy)
        self.scorer = scorer or LeadScorer()
        self.aggregator = aggregator or EngagementAggregator()
        self.extractor = extractor or ContactExtractor()
        self._locks = ConversationLocks()
        logger.info(f"LeadQualifier initialized with {self.policy.value} lead policy")

    def attach(self) -> Callable[[], None]:
        """Subscribe to the store. Returns the unsubscribe function."""
        return self.store.subscribe(self.on_event)

    def on_event(self, event: StoreEvent) -> None:
        if event.kind in self.TRIGGER_EVENTS:
            self.requalify(event.conversation_id)

    def evaluate(self, conversation_id: str) -> Qualification:
        """Recompute contact, engagement and score from stored records."""
        conversation = self.store.get_conversation(conversation_id)
        visitor_name = conversation.visitor_name if conversation else None

        turns = self.store.list_turns(conversation_id)
        engagement = self.aggregator.aggregate(self.store.list_engagement_samples(conversation_id))
        contact = self.extractor.extract(turns, visitor_name)
        score = self.scorer.score(turns, engagement.engagement_score, contact)

        visitor_text = " ".join(turn.content for turn in turns if turn.role == VISITOR).lower()
        mentioned: List[str] = [
            product.name for product in self.store.list_products()
            if product.name.lower() in visitor_text
        ]

        return Qualification(
            conversation_id=conversation_id,
            contact=contact,
            engagement=engagement,
            score=score,
            interest=", ".join(mentioned) or None,
        )

    def requalify(self, conversation_id: str, finalize: bool = False) -> Optional[Lead]:
        """
        Refresh the conversation's lead.

        Args:
            conversation_id: Conversation to evaluate
            finalize: True when the conversation has ended

        Returns:
            The current lead, or None if none has materialized
        """
        with self._locks.hold(conversation_id):
            qualification = self.evaluate(conversation_id)
            existing = self.store.get_lead_for_conversation(conversation_id)

            if existing is None and not self._should_materialize(qualification, finalize):
                return None

            lead = self._build_lead(qualification, existing)
            if lead == existing:
                return existing

            saved = self.store.save_lead(lead)
            logger.info(
                f"Lead for conversation {conversation_id}: "
                f"score={saved.lead_score} category={saved.score_category}",
                extra={"conversation_id": conversation_id},
            )
            return saved

    def finalize(self, conversation_id: str) -> Optional[Lead]:
        """Conversation ended; materialize the lead under either policy."""
        return self.requalify(conversation_id, finalize=True)

    def _should_materialize(self, qualification: Qualification, finalize: bool) -> bool:
        if not qualification.contact.has_reachable_contact():
            return False
        return self.policy == LeadPolicy.EAGER or finalize

    @staticmethod
    def _build_lead(qualification: Qualification, existing: Optional[Lead]) -> Lead:
        contact = qualification.contact
        return Lead(
            lead_id=existing.lead_id if existing else generate_id("lead"),
            conversation_id=qualification.conversation_id,
            name=contact.name or (existing.name if existing else ANONYMOUS),
            lead_score=qualification.score.lead_score,
            score_category=qualification.score.score_category,
            created_at=existing.created_at if existing else utc_now(),
            email=contact.email or (existing.email if existing else None),
            phone=contact.phone or (existing.phone if existing else None),
            interest=qualification.interest or (existing.interest if existing else None),
            status=existing.status if existing else "new",
        )
