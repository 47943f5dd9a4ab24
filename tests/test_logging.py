"""Tests for credential redaction in log output."""

import io
import logging

import pytest
import structlog

from vector_store_mcp.utils.logging import RedactingFilter, setup_logging

from tests.conftest import VALID_KEY

ACCESS_FORMAT = '%s - "%s %s HTTP/%s" %d'


def access_record(path: str) -> logging.LogRecord:
    """A record shaped like a uvicorn access log line."""
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=ACCESS_FORMAT,
        args=("127.0.0.1:50000", "POST", path, "1.1", 200),
        exc_info=None,
    )


class TestRedactingFilter:
    def test_path_key_is_redacted(self):
        record = access_record(f"/mcp/{VALID_KEY}")

        assert RedactingFilter().filter(record) is True
        message = record.getMessage()
        assert VALID_KEY not in message
        assert "/mcp/[REDACTED]" in message

    def test_path_key_without_known_prefix_is_redacted(self):
        record = access_record("/mcp/custom-token-value")
        RedactingFilter().filter(record)
        assert "custom-token-value" not in record.getMessage()

    def test_configured_key_is_redacted_anywhere(self, with_api_key):
        record = logging.LogRecord(
            "httpx", logging.INFO, __file__, 1, "auth header was %s", (VALID_KEY,), None
        )
        RedactingFilter().filter(record)
        assert VALID_KEY not in record.getMessage()

    def test_clean_records_are_untouched(self):
        record = access_record("/mcp")
        RedactingFilter().filter(record)
        assert record.args is not None
        assert record.getMessage() == '127.0.0.1:50000 - "POST /mcp HTTP/1.1" 200'


@pytest.fixture
def stderr_handler():
    """A root handler standing in for the process stderr stream."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    root = logging.getLogger()
    root.addHandler(handler)
    access = logging.getLogger("uvicorn.access")
    previous_level = access.level
    access.setLevel(logging.INFO)
    yield stream
    access.setLevel(previous_level)
    root.removeHandler(handler)
    structlog.reset_defaults()


def test_setup_logging_redacts_access_log(stderr_handler):
    setup_logging()

    logging.getLogger("uvicorn.access").info(
        ACCESS_FORMAT, "127.0.0.1:50000", "POST", f"/mcp/{VALID_KEY}", "1.1", 200
    )

    output = stderr_handler.getvalue()
    assert "POST /mcp/[REDACTED]" in output
    assert VALID_KEY not in output
