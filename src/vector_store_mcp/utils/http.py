"""HTTP client utilities with retry and timeout handling."""

import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from vector_store_mcp.config.loader import get_settings

logger = logging.getLogger(__name__)


def create_http_client(
    timeout: float | None = None,
    base_url: str | None = None,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an async HTTP client with sensible defaults.

    Args:
        timeout: Request timeout in seconds. Uses default from settings if None.
        base_url: Optional base URL for all requests.
        headers: Extra headers sent with every request.
        transport: Optional transport override (used by tests).

    Returns:
        Configured httpx.AsyncClient instance.
    """
    settings = get_settings()

    if timeout is None:
        timeout = float(settings.backend_timeout)

    all_headers = {
        "User-Agent": f"{settings.server_name}/{settings.server_version}",
    }
    all_headers.update(headers or {})

    return httpx.AsyncClient(
        base_url=base_url or "",
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers=all_headers,
        transport=transport,
        limits=httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0,
        ),
    )


# Only connection failures are retried: the request never reached the backend,
# so repeating a POST cannot duplicate a resource.
http_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(httpx.ConnectError),
    reraise=True,
)
