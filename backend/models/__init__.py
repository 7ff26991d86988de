"""Data models for the Lead Qualification Assistant."""
from .conversation import Conversation, Turn, VISITOR, ASSISTANT
from .engagement import EngagementSample, EngagementSummary, EMOTIONS
from .lead import Lead, LeadScore, ContactInfo, HOT, WARM, COLD
from .product import Product

__all__ = [
    "Conversation",
    "Turn",
    "VISITOR",
    "ASSISTANT",
    "EngagementSample",
    "EngagementSummary",
    "EMOTIONS",
    "Lead",
    "LeadScore",
    "ContactInfo",
    "HOT",
    "WARM",
    "COLD",
    "Product",
]
