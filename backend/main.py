"""Main entry point for the Lead Qualification Assistant API."""
import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import (
    PORT,
    CORS_ORIGINS,
    STORE_BACKEND,
    RECOMMENDATION_STRATEGY,
    RECOMMENDATION_LIMIT,
    ENGAGEMENT_SAMPLE_INTERVAL_SECONDS,
    LEAD_POLICY,
)
from models.api import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    ProductOut,
    TurnOut,
    EngagementSampleRequest,
    EngagementSampleOut,
    EngagementSummaryOut,
    LeadOut,
    LeadStats,
    LeadListResponse,
    DashboardStatsOut,
)
from models.engagement import EngagementSample
from models.lead import Lead
from models.product import Product
from services.analytics import DashboardAnalytics
from services.catalog import load_catalog
from services.conversation_orchestrator import ConversationOrchestrator
from services.engagement_aggregator import EngagementAggregator
from services.engagement_tracker import EngagementTracker, SignalProducer, SimulatedEmotionProducer
from services.errors import ChatPipelineError, ConversationNotFound
from services.lead_qualifier import LeadQualifier, LeadPolicy
from services.llm_client import LLMClient
from services.recommendation_selector import create_selector
from services.signal_store import SignalStore, InMemorySignalStore

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Lead Qualification Assistant",
    description="Conversational sales assistant with lead scoring and engagement tracking",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def empty_preflight_body(request: Request, call_next):
    """Answer successful pre-flight requests with headers only."""
    response = await call_next(request)
    if request.method == "OPTIONS" and response.status_code == 200:
        headers = {
            key: value for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)
    return response

# Initialize services (will be done on startup)
store: SignalStore = None
orchestrator: ConversationOrchestrator = None
engagement_tracker: EngagementTracker = None
signal_producer: SignalProducer = None
lead_qualifier: LeadQualifier = None
analytics: DashboardAnalytics = None
aggregator: EngagementAggregator = None


def create_store(backend: str = STORE_BACKEND) -> SignalStore:
    """Build the configured signal store."""
    if backend == "memory":
        return InMemorySignalStore(products=load_catalog())
    if backend == "supabase":
        from services.supabase_store import SupabaseSignalStore
        return SupabaseSignalStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global store, orchestrator, engagement_tracker, signal_producer
    global lead_qualifier, analytics, aggregator

    logger.info("Initializing Lead Qualification Assistant services...")

    try:
        store = create_store()
        logger.info(f"Initialized {type(store).__name__}")

        lead_qualifier = LeadQualifier(store, policy=LeadPolicy(LEAD_POLICY))
        lead_qualifier.attach()
        logger.info("Initialized LeadQualifier")

        orchestrator = ConversationOrchestrator(
            store=store,
            llm_client=LLMClient(),
            selector=create_selector(RECOMMENDATION_STRATEGY, RECOMMENDATION_LIMIT),
        )
        logger.info("Initialized ConversationOrchestrator")

        engagement_tracker = EngagementTracker(store, interval_seconds=ENGAGEMENT_SAMPLE_INTERVAL_SECONDS)
        signal_producer = SimulatedEmotionProducer()
        aggregator = EngagementAggregator()
        analytics = DashboardAnalytics(store, aggregator)

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.exception_handler(ChatPipelineError)
async def pipeline_error_handler(request: Request, exc: ChatPipelineError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": detail})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Lead Qualification Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "lead-qualification-assistant",
        "version": "1.0.0"
    }


@app.options("/chat")
async def chat_preflight():
    """Pre-flight requests get an empty success response."""
    return Response(status_code=200)


@app.post(
    "/chat",
    response_model=ChatResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 402, 429, 500)},
)
def chat_endpoint(request: ChatRequest):
    """
    Chat entry point.

    Runs on the worker thread pool so a slow generative backend call for
    one conversation never blocks requests for other conversations.

    Returns:
        ChatResponse on success, or {"error": ...} with 400 (invalid
        request), 429 (rate limited), 402 (credits exhausted) or 500
    """
    try:
        result = orchestrator.handle_message(
            conversation_id=request.conversation_id,
            message=request.message,
            visitor_name=request.visitor_name,
        )
    except ChatPipelineError as e:
        status_code = e.status_code if e.status_code in (400, 402, 429) else 500
        return JSONResponse(status_code=status_code, content={"error": e.message})
    except Exception as e:
        logger.error(f"Unexpected error in chat endpoint: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e) or "Unknown error"})

    return ChatResponse(
        conversation_id=result.conversation_id,
        message=result.reply_text,
        recommended_products=[_product_out(p) for p in result.recommended_products],
    )


@app.get("/conversations/{conversation_id}/turns")
def list_turns_endpoint(conversation_id: str):
    """Full ordered history of a conversation."""
    _require_conversation(conversation_id)
    return [
        TurnOut(id=t.turn_id, role=t.role, content=t.content, created_at=t.created_at).model_dump(by_alias=True, mode="json")
        for t in store.list_turns(conversation_id)
    ]


@app.post("/conversations/{conversation_id}/engagement", status_code=202)
def record_engagement_endpoint(conversation_id: str, sample: EngagementSampleRequest):
    """
    Ingest one engagement sample.

    Engagement tracking is best-effort: samples inside the sampling interval
    or that cannot be stored come back as not accepted.
    """
    try:
        stored = engagement_tracker.record(
            conversation_id,
            sample.emotion,
            sample.confidence,
            sample.engagement_score,
            sample.metadata,
        )
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    return _sample_result(stored)


@app.post("/conversations/{conversation_id}/engagement/simulate", status_code=202)
def simulate_engagement_endpoint(conversation_id: str):
    """Record one reading from the configured signal producer."""
    stored = engagement_tracker.record_from(signal_producer, conversation_id)
    return _sample_result(stored)


@app.get("/conversations/{conversation_id}/engagement", response_model=EngagementSummaryOut)
def engagement_summary_endpoint(conversation_id: str):
    """Engagement score and dominant emotion recomputed from stored samples."""
    _require_conversation(conversation_id)
    summary = aggregator.aggregate(store.list_engagement_samples(conversation_id))
    return EngagementSummaryOut(
        engagement_score=summary.engagement_score,
        dominant_emotion=summary.dominant_emotion,
        sample_count=summary.sample_count,
    )


@app.post("/conversations/{conversation_id}/end")
def end_conversation_endpoint(conversation_id: str):
    """Mark the conversation finished and materialize its lead if qualified."""
    _require_conversation(conversation_id)
    lead = lead_qualifier.finalize(conversation_id)
    return {"lead": _lead_out(lead).model_dump(by_alias=True, mode="json") if lead else None}


@app.get("/leads", response_model=LeadListResponse)
def list_leads_endpoint():
    """Leads ordered by score with hot/warm/cold counts."""
    summary = analytics.lead_summary()
    return LeadListResponse(
        leads=[_lead_out(lead) for lead in summary.leads],
        stats=LeadStats(hot=summary.hot, warm=summary.warm, cold=summary.cold, avg_score=summary.avg_score),
    )


@app.get("/analytics", response_model=DashboardStatsOut)
def analytics_endpoint():
    """Headline dashboard numbers."""
    stats = analytics.dashboard_stats()
    return DashboardStatsOut(
        total_conversations=stats.total_conversations,
        total_messages=stats.total_messages,
        total_leads=stats.total_leads,
        active_today=stats.active_today,
        avg_engagement=stats.avg_engagement,
        top_emotion=stats.top_emotion,
    )


def _require_conversation(conversation_id: str) -> None:
    if store.get_conversation(conversation_id) is None:
        raise ConversationNotFound(conversation_id)


def _product_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.product_id,
        name=product.name,
        description=product.description,
        price=product.price,
        features=product.features,
        category=product.category,
    )


def _lead_out(lead: Lead) -> LeadOut:
    return LeadOut(
        id=lead.lead_id,
        conversation_id=lead.conversation_id,
        name=lead.name,
        email=lead.email,
        phone=lead.phone,
        lead_score=lead.lead_score,
        score_category=lead.score_category,
        interest=lead.interest,
        status=lead.status,
        created_at=lead.created_at,
    )


def _sample_result(stored: Optional[EngagementSample]) -> dict:
    if stored is None:
        return {"accepted": False}
    sample = EngagementSampleOut(
        id=stored.sample_id,
        emotion=stored.emotion,
        confidence=stored.confidence,
        engagement_score=stored.engagement_score,
        created_at=stored.created_at,
    )
    return {"accepted": True, "sample": sample.model_dump(by_alias=True, mode="json")}


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Lead Qualification Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
