"""Engagement aggregation over stored emotion samples."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Sequence

from models.engagement import EngagementSample, EngagementSummary, NEUTRAL

logger = logging.getLogger(__name__)


class EngagementAggregator:
    """
    Reduce a conversation's engagement samples to a single summary.

    The summary is recomputed from the full sample history on every call so
    the live dashboard and the lead scorer always agree, across restarts and
    across independent callers.
    """

    def aggregate(self, samples: Sequence[EngagementSample]) -> EngagementSummary:
        """
        Summarize engagement samples.

        Args:
            samples: Samples in capture order (may be empty)

        Returns:
            EngagementSummary where engagement_score is the mean sample score
            rounded to the nearest integer (0 when empty) and dominant_emotion
            is the most frequent label, ties going to the label seen first
            ("neutral" when empty)
        """
        if not samples:
            return EngagementSummary(engagement_score=0, dominant_emotion=NEUTRAL, sample_count=0)

        total = sum(sample.engagement_score for sample in samples)
        mean = Decimal(total) / Decimal(len(samples))
        engagement_score = int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

        return EngagementSummary(
            engagement_score=engagement_score,
            dominant_emotion=self.dominant_emotion(samples),
            sample_count=len(samples),
        )

    @staticmethod
    def dominant_emotion(samples: Sequence[EngagementSample]) -> str:
        # dicts keep insertion order, so the first label to reach the top
        # count is the one that appeared first
        counts: Dict[str, int] = {}
        for sample in samples:
            counts[sample.emotion] = counts.get(sample.emotion, 0) + 1
        if not counts:
            return NEUTRAL

        best_label = NEUTRAL
        best_count = 0
        for label, count in counts.items():
            if count > best_count:
                best_label, best_count = label, count
        return best_label
