"""API request/response models for the chat service."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base model that reads and writes camelCase field names."""
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(ApiModel):
    """Inbound visitor message."""
    # Optional at the schema level so the orchestrator reports missing
    # fields with the same error shape as every other failure.
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    message: Optional[str] = None
    visitor_name: Optional[str] = Field(default=None, alias="visitorName")


class ProductOut(ApiModel):
    id: str
    name: str
    description: str
    price: float
    features: List[str] = []
    category: Optional[str] = None


class ChatResponse(ApiModel):
    conversation_id: str = Field(alias="conversationId")
    message: str
    recommended_products: List[ProductOut] = Field(alias="recommendedProducts")


class ErrorResponse(BaseModel):
    error: str


class TurnOut(ApiModel):
    id: str
    role: str
    content: str
    created_at: datetime = Field(alias="createdAt")


class EngagementSampleRequest(ApiModel):
    """One emotion/engagement measurement from a signal producer."""
    emotion: str
    confidence: float = Field(ge=0.0, le=1.0)
    engagement_score: int = Field(ge=0, le=100, alias="engagementScore")
    metadata: Dict[str, Any] = {}


class EngagementSampleOut(ApiModel):
    id: str
    emotion: str
    confidence: float
    engagement_score: int = Field(alias="engagementScore")
    created_at: datetime = Field(alias="createdAt")


class EngagementSummaryOut(ApiModel):
    engagement_score: int = Field(alias="engagementScore")
    dominant_emotion: str = Field(alias="dominantEmotion")
    sample_count: int = Field(alias="sampleCount")


class LeadOut(ApiModel):
    id: str
    conversation_id: str = Field(alias="conversationId")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    lead_score: int = Field(alias="leadScore")
    score_category: str = Field(alias="scoreCategory")
    interest: Optional[str] = None
    status: str
    created_at: datetime = Field(alias="createdAt")


class LeadStats(ApiModel):
    hot: int
    warm: int
    cold: int
    avg_score: int = Field(alias="avgScore")


class LeadListResponse(ApiModel):
    leads: List[LeadOut]
    stats: LeadStats


class DashboardStatsOut(ApiModel):
    total_conversations: int = Field(alias="totalConversations")
    total_messages: int = Field(alias="totalMessages")
    total_leads: int = Field(alias="totalLeads")
    active_today: int = Field(alias="activeToday")
    avg_engagement: int = Field(alias="avgEngagement")
    top_emotion: str = Field(alias="topEmotion")
