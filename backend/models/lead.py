"""Lead data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

HOT = "hot"
WARM = "warm"
COLD = "cold"


@dataclass
class ContactInfo:
    """Contact fields captured from a conversation so far."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def has_reachable_contact(self) -> bool:
        """True once an email or phone number is known."""
        return bool(self.email or self.phone)


@dataclass
class LeadScore:
    """
    Result of lead scoring.

    Attributes:
        lead_score: Numeric score, clamped to 0-100
        score_category: "hot", "warm" or "cold"
        breakdown: Points contributed by each signal
    """
    lead_score: int
    score_category: str
    breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass
class Lead:
    """A qualified contact derived from a conversation."""
    lead_id: str
    conversation_id: str
    name: str
    lead_score: int
    score_category: str
    created_at: datetime
    email: Optional[str] = None
    phone: Optional[str] = None
    interest: Optional[str] = None
    status: str = "new"
