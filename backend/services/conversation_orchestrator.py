"""
Conversation orchestrator: the per-request state machine behind POST /chat.

    RECEIVED -> CONTEXT_ASSEMBLED -> GENERATING -> PERSISTED -> RESPONDED

Any error raised while leaving a state ends the request. The visitor's turn
is written before the generative backend is called and is never rolled
back, so a failed reply leaves exactly one new turn in the history.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.conversation import Conversation, VISITOR, ASSISTANT
from models.product import Product
from services.conversation_locks import ConversationLocks
from services.errors import ChatPipelineError, ValidationError
from services.llm_client import LLMClient
from services.recommendation_selector import RecommendationSelector, CatalogOrderSelector
from services.signal_store import SignalStore

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    RECEIVED = "received"
    CONTEXT_ASSEMBLED = "context_assembled"
    GENERATING = "generating"
    PERSISTED = "persisted"
    RESPONDED = "responded"


@dataclass
class ChatResult:
    """Successful outcome of a chat request."""
    conversation_id: str
    reply_text: str
    recommended_products: List[Product]
    states: List[RequestState] = field(default_factory=list)


class ConversationOrchestrator:
    """Turn an inbound visitor message into a persisted, grounded reply."""

    def __init__(
        self,
        store: SignalStore,
        llm_client: LLMClient,
        selector: Optional[RecommendationSelector] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Signal store holding conversations, turns and the catalog
            llm_client: Generative backend client
            selector: Recommendation strategy (defaults to catalog order)
        """
        self.store = store
        self.llm_client = llm_client
        self.selector = selector or CatalogOrderSelector()
        self.locks = ConversationLocks()

    def handle_message(
        self,
        conversation_id: Optional[str],
        message: Optional[str],
        visitor_name: Optional[str],
    ) -> ChatResult:
        """
        Handle one visitor message end to end.

        Args:
            conversation_id: Existing conversation id, or None to start one
            message: Visitor's message text
            visitor_name: Visitor's display name ("" when not yet known)

        Returns:
            ChatResult with the conversation id, reply text and recommendations

        Raises:
            ValidationError: Empty message or missing visitor name; nothing is written
            StorageUnavailable: A read or write against the store failed
            LLMClientError: The generative backend failed (subclass gives the reason)
        """
        self._validate(message, visitor_name)
        visitor_name = visitor_name.strip()

        states: List[RequestState] = [RequestState.RECEIVED]
        try:
            conversation = self._load_or_create(conversation_id, visitor_name)
        except ChatPipelineError as e:
            e.failed_state = RequestState.RECEIVED
            raise

        with self.locks.hold(conversation.conversation_id):
            try:
                return self._run(conversation, message, states)
            except ChatPipelineError as e:
                e.failed_state = states[-1]
                logger.error(
                    f"Chat request failed after {states[-1].value}: {e.message}",
                    extra={
                        "conversation_id": conversation.conversation_id,
                        "state": states[-1].value,
                        "error_code": type(e).__name__,
                    },
                )
                raise

    def _run(
        self,
        conversation: Conversation,
        message: str,
        states: List[RequestState],
    ) -> ChatResult:
        conversation_id = conversation.conversation_id

        # A reply cannot be grounded without a durable record of the question
        self.store.append_turn(conversation_id, VISITOR, message)

        turns = self.store.list_turns(conversation_id)
        catalog = self.store.list_products()
        messages = LLMClient.build_messages(catalog, turns, conversation.visitor_name)
        self._advance(states, RequestState.CONTEXT_ASSEMBLED, conversation_id)

        self._advance(states, RequestState.GENERATING, conversation_id)
        llm_response = self.llm_client.generate(messages)

        reply_turn = self.store.append_turn(conversation_id, ASSISTANT, llm_response.text)
        self._advance(states, RequestState.PERSISTED, conversation_id)

        conversation.turns = turns + [reply_turn]
        recommended = self.selector.select(conversation, catalog)
        self._advance(states, RequestState.RESPONDED, conversation_id)

        logger.info(
            f"Replied in conversation {conversation_id} "
            f"({len(conversation.turns)} turns, {len(recommended)} recommendations)"
        )
        return ChatResult(
            conversation_id=conversation_id,
            reply_text=llm_response.text,
            recommended_products=recommended,
            states=list(states),
        )

    def _load_or_create(self, conversation_id: Optional[str], visitor_name: str) -> Conversation:
        if conversation_id:
            conversation = self.store.get_conversation(conversation_id)
            if conversation is not None:
                if visitor_name and not conversation.visitor_name:
                    conversation = self.store.set_visitor_name(conversation_id, visitor_name)
                return conversation
            logger.warning(f"Conversation {conversation_id} not found, creating new one")

        return self.store.create_conversation(visitor_name or None)

    @staticmethod
    def _validate(message: Optional[str], visitor_name: Optional[str]) -> None:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required and cannot be empty")
        if not isinstance(visitor_name, str):
            raise ValidationError("visitorName is required")

    @staticmethod
    def _advance(states: List[RequestState], state: RequestState, conversation_id: str) -> None:
        states.append(state)
        logger.debug(f"Conversation {conversation_id} -> {state.value}")
