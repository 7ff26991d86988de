"""Unit tests for structured logging."""
import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from logger import JSONFormatter


def make_record(msg="Chat request failed", level=logging.ERROR, **extra):
    record = logging.LogRecord(
        name="services.conversation_orchestrator",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "ERROR"
        assert data["logger"] == "services.conversation_orchestrator"
        assert data["message"] == "Chat request failed"
        assert data["timestamp"].endswith("Z")

    def test_structured_extras(self):
        record = make_record(
            conversation_id="conv_abc",
            state="generating",
            error_code="GenerativeBackendRateLimited",
            error_details={"retry_after": 60},
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["conversation_id"] == "conv_abc"
        assert data["state"] == "generating"
        assert data["error_code"] == "GenerativeBackendRateLimited"
        assert data["error_details"] == {"retry_after": 60}

    def test_unknown_extras_are_not_emitted(self):
        data = json.loads(JSONFormatter().format(make_record(secret="x")))
        assert "secret" not in data

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]
