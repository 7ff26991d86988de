"""
Lead Scorer for the lead qualification assistant.

Deterministic, additive scoring of a conversation. Every component only adds
points, so the score never decreases when contact fields are captured, when
the visitor writes more substantive messages, or when engagement rises.
Recomputing from the same inputs always yields the same result.
"""
import logging
import re
from typing import Dict, Sequence

from models.conversation import Turn, VISITOR
from models.lead import ContactInfo, LeadScore, HOT, WARM, COLD

logger = logging.getLogger(__name__)


class LeadScorer:
    """Score a conversation and map the score to hot/warm/cold."""

    # Category thresholds (inclusive lower bounds)
    WARM_THRESHOLD = 40
    HOT_THRESHOLD = 70

    MIN_SCORE = 0
    MAX_SCORE = 100

    # Contact points
    NAME_POINTS = 10
    EMAIL_POINTS = 20
    PHONE_POINTS = 15

    # Conversation depth
    SUBSTANTIVE_MIN_WORDS = 3
    POINTS_PER_SUBSTANTIVE_TURN = 5
    MAX_TURN_POINTS = 25

    # Buying intent, awarded once
    INTENT_POINTS = 10
    INTENT_KEYWORDS = {
        "price", "pricing", "cost", "quote", "buy", "purchase", "demo",
        "trial", "subscribe", "budget", "contract", "sign up", "plan",
    }
    # Whole words only, with an optional plural "s"
    INTENT_PATTERN = re.compile(
        r"\b(" + "|".join(re.escape(k) for k in sorted(INTENT_KEYWORDS, key=len, reverse=True)) + r")s?\b"
    )

    # Engagement score (0-100) weight
    ENGAGEMENT_WEIGHT = 0.3

    def score(
        self,
        turns: Sequence[Turn],
        engagement_score: int,
        contact: ContactInfo,
    ) -> LeadScore:
        """
        Compute the lead score for a conversation.

        Args:
            turns: Full conversation history in order
            engagement_score: Aggregated engagement score (0-100)
            contact: Contact fields captured so far

        Returns:
            LeadScore with the clamped score, its category and a per-signal
            breakdown
        """
        visitor_texts = [turn.content for turn in turns if turn.role == VISITOR]

        breakdown: Dict[str, int] = {
            "contact": self._contact_points(contact),
            "depth": self._depth_points(visitor_texts),
            "intent": self._intent_points(visitor_texts),
            "engagement": self._engagement_points(engagement_score),
        }
        total = sum(breakdown.values())
        lead_score = max(self.MIN_SCORE, min(self.MAX_SCORE, total))

        logger.debug(f"Lead score {lead_score} from breakdown {breakdown}")
        return LeadScore(
            lead_score=lead_score,
            score_category=self.categorize(lead_score),
            breakdown=breakdown,
        )

    @classmethod
    def categorize(cls, lead_score: int) -> str:
        """Map a score to its category using the fixed thresholds."""
        if lead_score >= cls.HOT_THRESHOLD:
            return HOT
        if lead_score >= cls.WARM_THRESHOLD:
            return WARM
        return COLD

    def _contact_points(self, contact: ContactInfo) -> int:
        points = 0
        if contact.name:
            points += self.NAME_POINTS
        if contact.email:
            points += self.EMAIL_POINTS
        if contact.phone:
            points += self.PHONE_POINTS
        return points

    def _depth_points(self, visitor_texts: Sequence[str]) -> int:
        substantive = sum(
            1 for text in visitor_texts
            if len(text.split()) >= self.SUBSTANTIVE_MIN_WORDS
        )
        return min(self.MAX_TURN_POINTS, substantive * self.POINTS_PER_SUBSTANTIVE_TURN)

    def _intent_points(self, visitor_texts: Sequence[str]) -> int:
        for text in visitor_texts:
            if self.INTENT_PATTERN.search(text.lower()):
                return self.INTENT_POINTS
        return 0

    def _engagement_points(self, engagement_score: int) -> int:
        bounded = max(0, min(100, engagement_score))
        return int(round(bounded * self.ENGAGEMENT_WEIGHT))
