"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

VISITOR = "visitor"
ASSISTANT = "assistant"
ROLES = (VISITOR, ASSISTANT)


@dataclass
class Turn:
    """Represents a single message in a conversation."""
    turn_id: str
    conversation_id: str
    role: str  # "visitor" or "assistant"
    content: str
    created_at: datetime


@dataclass
class Conversation:
    """Represents a visitor's chat session."""
    conversation_id: str
    created_at: datetime
    visitor_name: Optional[str] = None
    turns: List[Turn] = field(default_factory=list)
