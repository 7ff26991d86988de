"""Engagement sample data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

EMOTIONS = ("joy", "sadness", "anger", "fear", "surprise", "neutral")
NEUTRAL = "neutral"


@dataclass
class EngagementSample:
    """One periodic emotion/engagement measurement tied to a conversation."""
    sample_id: str
    conversation_id: str
    emotion: str
    confidence: float  # 0.0 to 1.0
    engagement_score: int  # 0 to 100
    created_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EngagementSummary:
    """Aggregate of a conversation's engagement samples."""
    engagement_score: int
    dominant_emotion: str
    sample_count: int = 0
