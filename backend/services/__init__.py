"""Services for the Lead Qualification Assistant."""
from .errors import ChatPipelineError, ValidationError, StorageUnavailable, ConversationNotFound
from .signal_store import SignalStore, InMemorySignalStore, StoreEvent
from .engagement_aggregator import EngagementAggregator
from .engagement_tracker import EngagementTracker, SignalProducer, SimulatedEmotionProducer
from .contact_extractor import ContactExtractor
from .lead_scorer import LeadScorer
from .lead_qualifier import LeadQualifier, LeadPolicy
from .recommendation_selector import RecommendationSelector, CatalogOrderSelector, KeywordMatchSelector
from .llm_client import (
    LLMClient,
    LLMResponse,
    LLMError,
    LLMClientError,
    GenerativeBackendRateLimited,
    GenerativeBackendPaymentRequired,
    GenerativeBackendUnavailable,
    MalformedBackendResponse,
)
from .conversation_orchestrator import ConversationOrchestrator, ChatResult, RequestState
from .analytics import DashboardAnalytics

__all__ = ['ChatPipelineError', 'ValidationError', 'StorageUnavailable', 'ConversationNotFound', 'SignalStore', 'InMemorySignalStore', 'StoreEvent', 'EngagementAggregator', 'EngagementTracker', 'SignalProducer', 'SimulatedEmotionProducer', 'ContactExtractor', 'LeadScorer', 'LeadQualifier', 'LeadPolicy', 'RecommendationSelector', 'CatalogOrderSelector', 'KeywordMatchSelector', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'GenerativeBackendRateLimited', 'GenerativeBackendPaymentRequired', 'GenerativeBackendUnavailable', 'MalformedBackendResponse', 'ConversationOrchestrator', 'ChatResult', 'RequestState', 'DashboardAnalytics']
