"""LLM Client for Groq chat completions."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Sequence, Type
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIStatusError, APIError, APITimeoutError
import logging

from config import (
    GROQ_API_KEY,
    GROQ_BASE_URL,
    CHAT_MODEL,
    LLM_TIMEOUT_SECONDS,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
)
from models.conversation import Turn, VISITOR
from models.product import Product
from services.errors import ChatPipelineError

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(ChatPipelineError):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class GenerativeBackendRateLimited(LLMClientError):
    """Backend signalled over-quota."""

    status_code = 429


class GenerativeBackendPaymentRequired(LLMClientError):
    """Backend signalled exhausted credits."""

    status_code = 402


class GenerativeBackendUnavailable(LLMClientError):
    """Any other backend failure, including timeouts."""

    status_code = 500


class MalformedBackendResponse(GenerativeBackendUnavailable):
    """Backend answered without a usable completion."""


SYSTEM_PROMPT = """You are an intelligent AI sales assistant. Your role is to:
1. Understand customer needs and pain points
2. Recommend relevant products from our catalog
3. Capture lead information (name, email, phone) naturally in conversation
4. Be professional, helpful, and conversion-focused

Available Products:
{catalog}

Guidelines:
- Ask about their business challenges before recommending products
- When you identify a good fit, mention 2-3 specific features that solve their needs
- Naturally ask for contact info if they show interest
- Be conversational and personable, not pushy
- If they share contact info, acknowledge it and say you'll have someone follow up

{visitor_hint}"""


def _format_price(price: float) -> str:
    if float(price).is_integer():
        return str(int(price))
    return f"{price:.2f}"


class LLMClient:
    """Client for interfacing with Groq API for chat replies."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CHAT_MODEL,
        base_url: Optional[str] = GROQ_BASE_URL,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model name
            base_url: Optional OpenAI-compatible gateway URL
            timeout: Seconds before a generation call is abandoned
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.timeout = timeout
        # Quota errors surface to the visitor immediately instead of retrying
        self.client = Groq(
            api_key=self.api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        logger.info(f"LLMClient initialized successfully (model={model}, timeout={timeout}s)")

    def generate(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = LLM_MAX_TOKENS,
    ) -> LLMResponse:
        """
        Generate a chat reply using Groq API.

        Args:
            messages: OpenAI-style message list (system prompt first)
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            GenerativeBackendRateLimited: Backend returned 429
            GenerativeBackendPaymentRequired: Backend returned 402
            GenerativeBackendUnavailable: Timeout, empty completion or any other failure
        """
        model = self.model
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=LLM_TEMPERATURE,
            )

        except RateLimitError as e:
            self._raise(
                GenerativeBackendRateLimited, "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a moment.",
                model, start_time, e, retry_after=60,
            )
        except AuthenticationError as e:
            self._raise(
                GenerativeBackendUnavailable, "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e,
            )
        except APIStatusError as e:
            if e.status_code == 402:
                self._raise(
                    GenerativeBackendPaymentRequired, "PAYMENT_REQUIRED",
                    "AI service requires additional credits.",
                    model, start_time, e,
                )
            self._raise(
                GenerativeBackendUnavailable, "API_ERROR",
                f"AI gateway error: {e.status_code}",
                model, start_time, e, status_code=e.status_code,
            )
        except APITimeoutError as e:
            self._raise(
                GenerativeBackendUnavailable, "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                model, start_time, e, timeout=self.timeout,
            )
        except APIError as e:
            self._raise(
                GenerativeBackendUnavailable, "API_ERROR",
                f"Groq API error: {str(e)}",
                model, start_time, e,
            )
        except Exception as e:
            self._raise(
                GenerativeBackendUnavailable, "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e, error_type=type(e).__name__,
            )

        latency_ms = int((time.time() - start_time) * 1000)
        text = self._extract_text(response)
        if not text:
            error = LLMError(
                code="MALFORMED_RESPONSE",
                message="AI service returned an empty response.",
                details={"model": model, "latency_ms": latency_ms},
            )
            logger.error(
                f"Malformed response: model={model}, latency={latency_ms}ms",
                extra={"error_code": error.code, "error_details": error.details},
            )
            raise MalformedBackendResponse(error)

        usage = getattr(response, "usage", None)
        tokens_input = getattr(usage, "prompt_tokens", 0) or 0
        tokens_output = getattr(usage, "completion_tokens", 0) or 0

        logger.info(
            f"Generated response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model
        )

    @staticmethod
    def _extract_text(response) -> Optional[str]:
        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            return None
        if not isinstance(text, str) or not text.strip():
            return None
        return text

    @staticmethod
    def _raise(
        error_cls: Type[LLMClientError],
        code: str,
        message: str,
        model: str,
        start_time: float,
        original: Exception,
        **details: Any,
    ) -> None:
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "original_error": str(original),
                **details,
            },
        )
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={original}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        raise error_cls(error) from original

    @staticmethod
    def build_messages(
        catalog: Sequence[Product],
        turns: Sequence[Turn],
        visitor_name: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        """
        Build the grounding context for a reply.

        Args:
            catalog: Products the assistant may recommend
            turns: Full conversation history in order
            visitor_name: Visitor's name, if known

        Returns:
            Message list: the system prompt followed by every turn
        """
        catalog_text = "\n".join(
            f"- {product.name}: {product.description} (${_format_price(product.price)})"
            for product in catalog
        )
        if visitor_name:
            visitor_hint = f"Customer's name: {visitor_name}"
        else:
            visitor_hint = "Get their name early in the conversation"

        system_prompt = SYSTEM_PROMPT.format(catalog=catalog_text, visitor_hint=visitor_hint)

        messages = [{"role": "system", "content": system_prompt}]
        for turn in turns:
            messages.append({
                "role": "user" if turn.role == VISITOR else "assistant",
                "content": turn.content,
            })
        return messages
