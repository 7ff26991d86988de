"""
Engagement sample ingestion and signal producers.

Engagement tracking is best-effort telemetry: a rejected or failed sample is
logged and reported back as not accepted, and never interrupts a chat
request. Samples are accepted at most once per sampling interval per
conversation.
"""
import logging
import random
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Protocol

from models.engagement import EngagementSample, EMOTIONS
from services.errors import ChatPipelineError
from services.signal_store import SignalStore, utc_now

logger = logging.getLogger(__name__)


class SignalProducer(Protocol):
    """Source of (emotion, confidence, engagement) readings for a conversation."""

    def sample(self, conversation_id: str) -> Dict[str, Any]:
        """
        Produce one reading.

        Returns:
            Dict with emotion, confidence, engagement_score and metadata keys
        """
        ...


class SimulatedEmotionProducer:
    """
    Random emotion readings for demos; no video analysis is performed.

    Each reading draws a label uniformly from the closed emotion set and a
    confidence in [0.7, 1.0]. The engagement score is a fixed level per
    label, so a reading carries no state from earlier readings.
    """

    ENGAGEMENT_BY_EMOTION = {
        "joy": 80,
        "surprise": 70,
        "neutral": 50,
        "fear": 40,
        "sadness": 30,
        "anger": 25,
    }

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def sample(self, conversation_id: str) -> Dict[str, Any]:
        with self._lock:
            emotion = self._random.choice(EMOTIONS)
            confidence = round(0.7 + self._random.random() * 0.3, 4)
        return {
            "emotion": emotion,
            "confidence": confidence,
            "engagement_score": self.ENGAGEMENT_BY_EMOTION[emotion],
            "metadata": {
                "timestamp": utc_now().isoformat(),
                "analysis_method": "simulated",
            },
        }


class EngagementTracker:
    """Validate, rate-bound and persist engagement samples."""

    def __init__(
        self,
        store: SignalStore,
        interval_seconds: float = 3.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the tracker.

        Args:
            store: Signal store receiving the samples
            interval_seconds: Minimum spacing between samples of one conversation
            clock: Time source
        """
        self.store = store
        self.interval = timedelta(seconds=interval_seconds)
        self._clock = clock
        self._last_accepted: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def record(
        self,
        conversation_id: str,
        emotion: str,
        confidence: float,
        engagement_score: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[EngagementSample]:
        """
        Persist one sample if it is valid and due.

        Args:
            conversation_id: Conversation the sample belongs to
            emotion: One of the fixed emotion labels
            confidence: Confidence in [0, 1]
            engagement_score: Engagement in [0, 100]
            metadata: Opaque provenance data

        Returns:
            The stored sample, or None when it was rejected or could not be stored

        Raises:
            ValueError: Emotion, confidence or engagement score out of range
        """
        if emotion not in EMOTIONS:
            raise ValueError(f"Unknown emotion: {emotion}")
        if not 0.0 <= confidence <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")
        if not 0 <= engagement_score <= 100:
            raise ValueError("Engagement score must be between 0 and 100")

        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            last = self._last_accepted.get(conversation_id)
            if last is not None and now - last < self.interval:
                logger.debug(f"Dropping engagement sample for {conversation_id}: inside sampling interval")
                return None
            self._last_accepted[conversation_id] = now

        try:
            return self.store.append_engagement_sample(
                conversation_id, emotion, confidence, engagement_score, metadata
            )
        except ChatPipelineError as e:
            with self._lock:
                if self._last_accepted.get(conversation_id) == now:
                    del self._last_accepted[conversation_id]
            logger.warning(
                f"Engagement sample for {conversation_id} not stored: {e.message}",
                extra={"conversation_id": conversation_id, "error_code": type(e).__name__},
            )
            return None

    def record_from(self, producer: SignalProducer, conversation_id: str) -> Optional[EngagementSample]:
        """Take one reading from a producer and record it."""
        reading = producer.sample(conversation_id)
        return self.record(
            conversation_id,
            reading["emotion"],
            reading["confidence"],
            reading["engagement_score"],
            reading.get("metadata"),
        )

    def active(self) -> int:
        """Number of conversations still inside their sampling interval."""
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._last_accepted)

    def _evict_expired(self, now: datetime) -> None:
        # Caller holds self._lock
        expired = [cid for cid, last in self._last_accepted.items() if now - last >= self.interval]
        for cid in expired:
            del self._last_accepted[cid]
