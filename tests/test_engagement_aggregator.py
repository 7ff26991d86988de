"""Unit tests for EngagementAggregator."""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.engagement import EngagementSample
from services.engagement_aggregator import EngagementAggregator

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_samples(*readings):
    """Build samples from (emotion, engagement_score) pairs in capture order."""
    return [
        EngagementSample(
            sample_id=f"smp_{i}",
            conversation_id="conv_test",
            emotion=emotion,
            confidence=0.9,
            engagement_score=score,
            created_at=START + timedelta(seconds=3 * i),
        )
        for i, (emotion, score) in enumerate(readings)
    ]


class TestEngagementAggregator:
    """Test suite for EngagementAggregator."""

    @pytest.fixture
    def aggregator(self):
        return EngagementAggregator()

    def test_empty_samples(self, aggregator):
        """Test the neutral default when no samples exist."""
        summary = aggregator.aggregate([])

        assert summary.engagement_score == 0
        assert summary.dominant_emotion == "neutral"
        assert summary.sample_count == 0

    def test_mean_and_dominant_emotion(self, aggregator):
        """Test round((90+70+10)/3) = 57 with joy dominant."""
        summary = aggregator.aggregate(make_samples(("joy", 90), ("joy", 70), ("sadness", 10)))

        assert summary.engagement_score == 57
        assert summary.dominant_emotion == "joy"
        assert summary.sample_count == 3

    def test_half_rounds_up(self, aggregator):
        summary = aggregator.aggregate(make_samples(("joy", 50), ("joy", 51)))
        assert summary.engagement_score == 51

    def test_tie_goes_to_first_seen_label(self, aggregator):
        """Test that equal counts are broken by first appearance."""
        summary = aggregator.aggregate(make_samples(
            ("anger", 20), ("joy", 80), ("joy", 80), ("anger", 20),
        ))
        assert summary.dominant_emotion == "anger"

        summary = aggregator.aggregate(make_samples(
            ("joy", 80), ("anger", 20), ("anger", 20), ("joy", 80),
        ))
        assert summary.dominant_emotion == "joy"

    def test_single_sample(self, aggregator):
        summary = aggregator.aggregate(make_samples(("surprise", 73)))
        assert summary.engagement_score == 73
        assert summary.dominant_emotion == "surprise"

    def test_recomputation_is_stable(self, aggregator):
        """Test that repeated aggregation carries no running state."""
        samples = make_samples(("fear", 40), ("neutral", 50))

        first = aggregator.aggregate(samples)
        aggregator.aggregate(make_samples(("joy", 100)))
        second = aggregator.aggregate(samples)

        assert first == second
        assert EngagementAggregator().aggregate(samples) == first
