"""Integration tests for the HTTP endpoints."""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from models.product import Product
from services.llm_client import (
    LLMError,
    LLMResponse,
    GenerativeBackendRateLimited,
    GenerativeBackendPaymentRequired,
    GenerativeBackendUnavailable,
)
from services.errors import StorageUnavailable

CATALOG = [
    Product(product_id="p1", name="Starter Analytics", description="Dashboards", price=49,
            features=["Weekly reports"], category="Analytics"),
    Product(product_id="p2", name="Scale Cloud", description="Autoscaling", price=299),
    Product(product_id="p3", name="Pipeline CRM", description="Sales pipeline", price=129),
    Product(product_id="p4", name="Shield Security Suite", description="Threat detection", price=499),
]


def backend_error(error_cls, message):
    return error_cls(LLMError(code="ERR", message=message, details={}))


@pytest.fixture
def services():
    """Wire real in-memory services with a mocked generative backend."""
    import main
    from services.analytics import DashboardAnalytics
    from services.conversation_orchestrator import ConversationOrchestrator
    from services.engagement_aggregator import EngagementAggregator
    from services.engagement_tracker import EngagementTracker, SimulatedEmotionProducer
    from services.lead_qualifier import LeadQualifier
    from services.signal_store import InMemorySignalStore

    llm_client = Mock()
    llm_client.generate.return_value = LLMResponse(
        text="Sure, tell me more",
        tokens_input=100,
        tokens_output=5,
        latency_ms=10,
        model_used="llama-3.3-70b-versatile"
    )

    main.store = InMemorySignalStore(products=CATALOG)
    main.lead_qualifier = LeadQualifier(main.store)
    main.lead_qualifier.attach()
    main.orchestrator = ConversationOrchestrator(main.store, llm_client)
    main.engagement_tracker = EngagementTracker(main.store, interval_seconds=0)
    main.signal_producer = SimulatedEmotionProducer(seed=1)
    main.aggregator = EngagementAggregator()
    main.analytics = DashboardAnalytics(main.store, main.aggregator)

    yield main, llm_client


@pytest.fixture
def client(services):
    from main import app
    return TestClient(app)


def start_conversation(client, message="I need help with scaling"):
    response = client.post("/chat", json={"message": message, "visitorName": "Dana"})
    assert response.status_code == 200
    return response.json()["conversationId"]


class TestHealth:
    """Test suite for health endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestChatEndpoint:
    """Test suite for POST /chat."""

    def test_chat_success(self, client, services):
        main, _ = services

        response = client.post("/chat", json={
            "conversationId": None,
            "message": "I need help with scaling",
            "visitorName": "Dana",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Sure, tell me more"
        assert data["conversationId"].startswith("conv_")
        assert [p["name"] for p in data["recommendedProducts"]] == [
            "Starter Analytics", "Scale Cloud", "Pipeline CRM",
        ]
        assert data["recommendedProducts"][0]["features"] == ["Weekly reports"]
        assert len(main.store.list_turns(data["conversationId"])) == 2

    def test_chat_continues_conversation(self, client, services):
        main, _ = services
        cid = start_conversation(client)

        response = client.post("/chat", json={
            "conversationId": cid, "message": "What does it cost?", "visitorName": "Dana",
        })

        assert response.json()["conversationId"] == cid
        assert len(main.store.list_turns(cid)) == 4

    @pytest.mark.parametrize("body", [
        {"message": "", "visitorName": "Dana"},
        {"message": "   ", "visitorName": "Dana"},
        {"visitorName": "Dana"},
        {"message": "Hello"},
        {"message": 42, "visitorName": "Dana"},
    ])
    def test_invalid_request(self, client, services, body):
        """Test that malformed requests are rejected before any write."""
        main, llm_client = services

        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert "error" in response.json()
        assert main.store.count_conversations() == 0
        llm_client.generate.assert_not_called()

    def test_invalid_json(self, client):
        response = client.post("/chat", content="not json", headers={"content-type": "application/json"})
        assert response.status_code == 400

    @pytest.mark.parametrize("error_cls,status_code,message", [
        (GenerativeBackendRateLimited, 429, "Rate limit exceeded. Please try again in a moment."),
        (GenerativeBackendPaymentRequired, 402, "AI service requires additional credits."),
        (GenerativeBackendUnavailable, 500, "Request timed out. Please try again."),
    ])
    def test_backend_failures(self, client, services, error_cls, status_code, message):
        main, llm_client = services
        cid = start_conversation(client)
        llm_client.generate.side_effect = backend_error(error_cls, message)

        response = client.post("/chat", json={"conversationId": cid, "message": "Hello?", "visitorName": "Dana"})

        assert response.status_code == status_code
        assert response.json() == {"error": message}
        assert len(main.store.list_turns(cid)) == 3

    def test_storage_failure(self, client, services):
        main, _ = services
        main.orchestrator.store = Mock()
        main.orchestrator.store.create_conversation.side_effect = StorageUnavailable("Failed to create conversation")

        response = client.post("/chat", json={"message": "Hello", "visitorName": "Dana"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create conversation"}

    def test_unexpected_error(self, client, services):
        _, llm_client = services
        llm_client.generate.side_effect = RuntimeError("boom")

        response = client.post("/chat", json={"message": "Hello", "visitorName": "Dana"})

        assert response.status_code == 500
        assert response.json() == {"error": "boom"}

    def test_options_returns_empty_success(self, client):
        response = client.options("/chat")

        assert response.status_code == 200
        assert response.content == b""

    def test_cors_preflight(self, client):
        response = client.options("/chat", headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "https://example.com")
        assert response.content == b""

    def test_cors_preflight_allows_any_request_header(self, client):
        response = client.options("/chat", headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "x-request-id",
        })

        assert response.status_code == 200
        assert response.content == b""
        assert "access-control-allow-origin" in response.headers
        assert "x-request-id" in response.headers["access-control-allow-headers"].lower()


class TestConversationEndpoints:
    """Test suite for conversation read and engagement endpoints."""

    def test_list_turns(self, client):
        cid = start_conversation(client)

        response = client.get(f"/conversations/{cid}/turns")

        assert response.status_code == 200
        turns = response.json()
        assert [t["role"] for t in turns] == ["visitor", "assistant"]
        assert turns[0]["content"] == "I need help with scaling"
        assert "createdAt" in turns[0]

    def test_list_turns_unknown_conversation(self, client):
        response = client.get("/conversations/conv_missing/turns")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_record_engagement(self, client):
        cid = start_conversation(client)

        response = client.post(f"/conversations/{cid}/engagement", json={
            "emotion": "joy", "confidence": 0.9, "engagementScore": 80,
        })

        assert response.status_code == 202
        data = response.json()
        assert data["accepted"] is True
        assert data["sample"]["emotion"] == "joy"
        assert data["sample"]["engagementScore"] == 80

    @pytest.mark.parametrize("body", [
        {"emotion": "bored", "confidence": 0.9, "engagementScore": 80},
        {"emotion": "joy", "confidence": 1.5, "engagementScore": 80},
        {"emotion": "joy", "confidence": 0.9, "engagementScore": 120},
    ])
    def test_record_engagement_invalid(self, client, body):
        cid = start_conversation(client)

        response = client.post(f"/conversations/{cid}/engagement", json=body)

        assert response.status_code == 400

    def test_record_engagement_unknown_conversation(self, client):
        """Test that sample loss is reported rather than raised."""
        response = client.post("/conversations/conv_missing/engagement", json={
            "emotion": "joy", "confidence": 0.9, "engagementScore": 80,
        })

        assert response.status_code == 202
        assert response.json() == {"accepted": False}

    def test_simulate_engagement(self, client):
        cid = start_conversation(client)

        response = client.post(f"/conversations/{cid}/engagement/simulate")

        assert response.status_code == 202
        assert response.json()["accepted"] is True

    def test_engagement_summary(self, client):
        cid = start_conversation(client)
        for emotion, score in (("joy", 90), ("joy", 70), ("sadness", 10)):
            client.post(f"/conversations/{cid}/engagement", json={
                "emotion": emotion, "confidence": 0.9, "engagementScore": score,
            })

        response = client.get(f"/conversations/{cid}/engagement")

        assert response.json() == {"engagementScore": 57, "dominantEmotion": "joy", "sampleCount": 3}

    def test_engagement_summary_without_samples(self, client):
        cid = start_conversation(client)

        response = client.get(f"/conversations/{cid}/engagement")

        assert response.json() == {"engagementScore": 0, "dominantEmotion": "neutral", "sampleCount": 0}


class TestLeadEndpoints:
    """Test suite for lead and analytics endpoints."""

    def test_lead_captured_from_chat(self, client):
        cid = start_conversation(client, "I'm Dana, reach me at dana@example.com about Scale Cloud")

        response = client.get("/leads")

        assert response.status_code == 200
        data = response.json()
        assert len(data["leads"]) == 1
        lead = data["leads"][0]
        assert lead["conversationId"] == cid
        assert lead["email"] == "dana@example.com"
        assert lead["interest"] == "Scale Cloud"
        assert lead["scoreCategory"] in ("hot", "warm", "cold")
        assert data["stats"]["avgScore"] == lead["leadScore"]

    def test_no_leads(self, client):
        start_conversation(client)

        response = client.get("/leads")

        assert response.json() == {"leads": [], "stats": {"hot": 0, "warm": 0, "cold": 0, "avgScore": 0}}

    def test_end_conversation(self, client):
        cid = start_conversation(client, "My email is dana@example.com")

        response = client.post(f"/conversations/{cid}/end")

        assert response.status_code == 200
        assert response.json()["lead"]["email"] == "dana@example.com"

    def test_end_conversation_without_contact(self, client):
        cid = start_conversation(client)

        response = client.post(f"/conversations/{cid}/end")

        assert response.json() == {"lead": None}

    def test_end_unknown_conversation(self, client):
        assert client.post("/conversations/conv_missing/end").status_code == 404

    def test_analytics(self, client):
        cid = start_conversation(client)
        client.post(f"/conversations/{cid}/engagement", json={
            "emotion": "surprise", "confidence": 0.9, "engagementScore": 70,
        })

        response = client.get("/analytics")

        assert response.status_code == 200
        assert response.json() == {
            "totalConversations": 1,
            "totalMessages": 2,
            "totalLeads": 0,
            "activeToday": 1,
            "avgEngagement": 70,
            "topEmotion": "surprise",
        }
