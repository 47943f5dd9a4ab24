"""Pytest configuration and fixtures."""

import itertools
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from vector_store_mcp.backend.client import VectorStoreClient
from vector_store_mcp.config.loader import get_settings
from vector_store_mcp import main
from vector_store_mcp.main import app, reset_session_manager
from vector_store_mcp.mcp.executor import ToolExecutor
from vector_store_mcp.mcp.handlers import MCPHandlers
from vector_store_mcp.mcp.jsonrpc import JsonRpcProcessor
from vector_store_mcp.mcp.registry import get_registry, reset_registry, load_configured_registry
from vector_store_mcp.mcp.transport_http import SessionManager

BASE_URL = "https://api.test/v1"
VALID_KEY = "sk-test-valid-key-1234567890"


class FakeOpenAI:
    """In-memory stand-in for the vector store endpoints of the backend."""

    def __init__(self, api_key: str = VALID_KEY):
        self.api_key = api_key
        self.stores: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self._ids = itertools.count(1)

    def _error(self, status: int, message: str) -> httpx.Response:
        return httpx.Response(status, json={"error": {"message": message}})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.api_key}":
            return self._error(401, "Incorrect API key provided")

        path = request.url.path.removeprefix("/v1")
        parts = [p for p in path.split("/") if p]

        if parts == ["models"]:
            return httpx.Response(200, json={"object": "list", "data": []})

        if parts == ["vector_stores"] and request.method == "POST":
            body = json.loads(request.content)
            store_id = f"vs_{next(self._ids)}"
            store = {
                "id": store_id,
                "object": "vector_store",
                "name": body["name"],
                "metadata": body.get("metadata", {}),
                "status": "completed",
                "file_counts": {"total": 0},
            }
            if "expires_after" in body:
                store["expires_after"] = body["expires_after"]
            self.stores[store_id] = store
            return httpx.Response(200, json=store)

        if parts == ["vector_stores"] and request.method == "GET":
            return httpx.Response(
                200,
                json={"object": "list", "data": list(self.stores.values()), "has_more": False},
            )

        if len(parts) == 2 and parts[0] == "vector_stores":
            store_id = parts[1]
            if store_id not in self.stores:
                return self._error(404, f"No vector store found with id '{store_id}'.")
            if request.method == "DELETE":
                del self.stores[store_id]
                return httpx.Response(
                    200,
                    json={"id": store_id, "object": "vector_store.deleted", "deleted": True},
                )
            return httpx.Response(200, json=self.stores[store_id])

        if len(parts) == 3 and parts[0] == "files" and parts[2] == "content":
            return httpx.Response(
                200, text="line one\nline two", headers={"content-type": "text/plain"}
            )

        return self._error(404, f"Unknown path {path}")


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from any credential or config in the environment."""
    for var in ("OPENAI_API_KEY", "CREDENTIAL_VALIDATION", "TOOLS_CONFIG_PATH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_BASE_URL", BASE_URL)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_global_registry():
    """Reset the global tool registry before each test and reload all tool groups."""
    reset_registry()
    reset_session_manager()
    load_configured_registry()
    yield
    reset_registry()
    reset_session_manager()


@pytest.fixture
def registry():
    """The global registry with every tool group loaded."""
    return get_registry()


@pytest.fixture
def fake_backend():
    return FakeOpenAI()


@pytest.fixture
def client_factory(fake_backend):
    """Build backend clients that talk to the fake backend."""
    def _factory(api_key: str) -> VectorStoreClient:
        return VectorStoreClient(
            api_key, base_url=BASE_URL, transport=httpx.MockTransport(fake_backend)
        )
    return _factory


@pytest.fixture
def handlers(registry, client_factory):
    return MCPHandlers(registry, ToolExecutor(registry, client_factory))


@pytest.fixture
def processor(handlers):
    return JsonRpcProcessor(handlers)


@pytest.fixture
def with_api_key(monkeypatch):
    """Configure the backend credential through the environment."""
    monkeypatch.setenv("OPENAI_API_KEY", VALID_KEY)
    get_settings.cache_clear()
    return VALID_KEY


@pytest.fixture
def bridge(monkeypatch, registry, client_factory):
    """Session manager for the HTTP bridge, wired to the fake backend."""
    manager = SessionManager(registry, client_factory)
    monkeypatch.setattr(main, "_session_manager", manager)
    return manager


@pytest.fixture
def client(bridge):
    """Synchronous test client for the HTTP bridge."""
    return TestClient(app)


@pytest.fixture
def sample_jsonrpc_request():
    """Sample JSON-RPC request factory."""
    def _make_request(method: str, params: dict = None, id: int = 1):
        return {
            "jsonrpc": "2.0",
            "id": id,
            "method": method,
            "params": params or {},
        }
    return _make_request


@pytest.fixture
def initialize_params():
    return {
        "protocolVersion": "2024-11-05",
        "capabilities": {},
        "clientInfo": {"name": "test", "version": "1.0"},
    }
