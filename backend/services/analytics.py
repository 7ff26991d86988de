"""Dashboard aggregates computed from the signal store."""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List

from models.lead import Lead, HOT, WARM, COLD
from services.engagement_aggregator import EngagementAggregator
from services.signal_store import SignalStore, utc_now

logger = logging.getLogger(__name__)


@dataclass
class DashboardStats:
    total_conversations: int
    total_messages: int
    total_leads: int
    active_today: int
    avg_engagement: int
    top_emotion: str


@dataclass
class LeadSummary:
    """Leads ordered by score plus per-category counts."""
    leads: List[Lead]
    hot: int
    warm: int
    cold: int
    avg_score: int


class DashboardAnalytics:
    """Read-only views consumed by the dashboard and the leads list."""

    def __init__(
        self,
        store: SignalStore,
        aggregator: EngagementAggregator = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.aggregator = aggregator or EngagementAggregator()
        self._clock = clock

    def dashboard_stats(self) -> DashboardStats:
        """
        Compute the headline dashboard numbers.

        "Active today" counts conversations created since midnight UTC.
        Engagement figures use the same aggregation as per-conversation
        summaries, applied to every stored sample.
        """
        start_of_day = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
        engagement = self.aggregator.aggregate(self.store.list_all_engagement_samples())

        return DashboardStats(
            total_conversations=self.store.count_conversations(),
            total_messages=self.store.count_turns(),
            total_leads=len(self.store.list_leads()),
            active_today=self.store.count_conversations(since=start_of_day),
            avg_engagement=engagement.engagement_score,
            top_emotion=engagement.dominant_emotion,
        )

    def lead_summary(self) -> LeadSummary:
        leads = self.store.list_leads()
        if leads:
            mean = Decimal(sum(lead.lead_score for lead in leads)) / Decimal(len(leads))
            avg_score = int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        else:
            avg_score = 0

        return LeadSummary(
            leads=leads,
            hot=sum(1 for lead in leads if lead.score_category == HOT),
            warm=sum(1 for lead in leads if lead.score_category == WARM),
            cold=sum(1 for lead in leads if lead.score_category == COLD),
            avg_score=avg_score,
        )
