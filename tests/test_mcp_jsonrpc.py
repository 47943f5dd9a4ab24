"""Tests for MCP JSON-RPC protocol handling."""

import json

import pytest
from fastapi.testclient import TestClient

from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.mcp.errors import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    UNAUTHORIZED,
)
from vector_store_mcp.mcp.transport_http import SESSION_HEADER

from tests.conftest import VALID_KEY


def rpc(method: str, params: dict | None = None, id: int | str | None = 1) -> str:
    message = {"jsonrpc": "2.0", "method": method, "params": params or {}}
    if id is not None:
        message["id"] = id
    return json.dumps(message)


def initialize(client: TestClient, initialize_params: dict, path: str = "/mcp", **headers) -> str:
    response = client.post(path, json=json.loads(rpc("initialize", initialize_params)), headers=headers)
    assert "result" in response.json()
    return response.headers[SESSION_HEADER]


class TestJsonRpcParsing:
    """Tests for JSON-RPC message parsing."""

    def test_invalid_json_returns_parse_error(self, client: TestClient):
        """Test that invalid JSON returns parse error."""
        response = client.post(
            "/mcp",
            content="not valid json{",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["jsonrpc"] == "2.0"
        assert data["id"] is None
        assert data["error"]["code"] == PARSE_ERROR
        assert "parse error" in data["error"]["message"].lower()

    def test_missing_jsonrpc_field_returns_invalid_request(self, client: TestClient):
        response = client.post("/mcp", json={"id": 1, "method": "ping"})

        data = response.json()
        assert data["error"]["code"] == INVALID_REQUEST
        assert data["id"] == 1

    def test_wrong_jsonrpc_version_returns_invalid_request(self, client: TestClient):
        """Test that wrong jsonrpc version returns invalid request."""
        response = client.post(
            "/mcp",
            json={"jsonrpc": "1.0", "id": 1, "method": "test"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["error"]["code"] == INVALID_REQUEST

    def test_non_object_message_returns_invalid_request(self, client: TestClient):
        response = client.post("/mcp", json=[1, 2, 3])

        data = response.json()
        assert data["id"] is None
        assert data["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_invalid_utf8_returns_parse_error(self, processor):
        response = await processor.handle_message(b"\xff\xfe{")
        assert response.error.code == PARSE_ERROR

    def test_deeply_nested_json_returns_parse_error(self, client: TestClient):
        response = client.post("/mcp", content="[" * 200000 + "]" * 200000)
        assert response.status_code == 200

        data = response.json()
        assert data["id"] is None
        assert data["error"]["code"] == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_deeply_nested_json_processor(self, processor):
        response = await processor.handle_message("[" * 200000 + "]" * 200000)
        assert response.id is None
        assert response.error.code == PARSE_ERROR

    @pytest.mark.parametrize("bad_id", [True, False, 1.5, {"a": 1}, [1]])
    def test_non_scalar_or_boolean_id_returns_invalid_request(self, client: TestClient, bad_id):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": bad_id, "method": "ping"})

        data = response.json()
        assert "result" not in data
        assert data["id"] is None
        assert data["error"]["code"] == INVALID_REQUEST


class TestMcpMethods:
    """Tests for MCP protocol methods."""

    def test_unknown_method_returns_not_found(
        self, client: TestClient, sample_jsonrpc_request
    ):
        """Test that unknown method returns method not found."""
        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("unknown/method"),
        )
        assert response.status_code == 200

        data = response.json()
        assert data["error"]["code"] == METHOD_NOT_FOUND
        assert data["error"]["message"] == "Method not found: unknown/method"

    def test_initialize_returns_capabilities(
        self, client: TestClient, sample_jsonrpc_request, initialize_params
    ):
        """Test that initialize returns server capabilities."""
        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("initialize", initialize_params),
        )
        assert response.status_code == 200

        result = response.json()["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["capabilities"] == {"tools": {"listChanged": False}}
        assert result["serverInfo"]["name"] == "openai-vector-store-mcp"

    def test_ping(self, client: TestClient, sample_jsonrpc_request):
        response = client.post("/mcp", json=sample_jsonrpc_request("ping", id=7))
        assert response.json() == {"jsonrpc": "2.0", "id": 7, "result": {}}

    def test_tools_list_before_initialize(self, client: TestClient, sample_jsonrpc_request):
        """tools/list works without initialize and without a credential."""
        response = client.post("/mcp", json=sample_jsonrpc_request("tools/list"))
        assert response.status_code == 200

        tools = response.json()["result"]["tools"]
        assert len(tools) == 21
        for tool in tools:
            assert set(tool) == {"name", "description", "inputSchema"}

    def test_tools_call_before_initialize_is_protocol_error(
        self, client: TestClient, sample_jsonrpc_request
    ):
        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("tools/call", {"name": "vector-store-list", "arguments": {}}),
        )

        data = response.json()
        assert "result" not in data
        assert data["error"]["code"] == INVALID_REQUEST
        assert data["error"]["message"] == "Server not initialized"

    def test_tools_call_unknown_tool_is_in_band(
        self, client: TestClient, sample_jsonrpc_request, initialize_params
    ):
        """Test calling an unknown tool returns an isError result, not a protocol error."""
        session_id = initialize(client, initialize_params)
        headers = {SESSION_HEADER: session_id}

        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("tools/call", {"name": "unknown-tool", "arguments": {}}),
            headers=headers,
        )
        data = response.json()
        assert data["result"]["isError"] is True
        assert "Unknown tool: unknown-tool" in data["result"]["content"][0]["text"]

        # The session keeps working after a tool error
        response = client.post("/mcp", json=sample_jsonrpc_request("ping", id=2), headers=headers)
        assert response.json()["result"] == {}

    def test_tools_call_bad_params_is_protocol_error(
        self, client: TestClient, sample_jsonrpc_request, initialize_params
    ):
        session_id = initialize(client, initialize_params)
        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("tools/call", {"arguments": "not an object"}),
            headers={SESSION_HEADER: session_id},
        )
        assert response.json()["error"]["code"] == INVALID_PARAMS

    def test_tools_call_without_credential_is_in_band(
        self, client: TestClient, sample_jsonrpc_request, initialize_params
    ):
        session_id = initialize(client, initialize_params)
        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("tools/call", {"name": "vector-store-list"}),
            headers={SESSION_HEADER: session_id},
        )
        result = response.json()["result"]
        assert result["isError"] is True
        assert "OPENAI_API_KEY" in result["content"][0]["text"]

    def test_notification_returns_accepted(self, client: TestClient):
        """Test that notifications (no id) return 202 Accepted."""
        response = client.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "method": "notifications/initialized",
                # No id = notification
            },
        )
        assert response.status_code == 202
        assert response.content == b""

    def test_method_aliases(self, client: TestClient, sample_jsonrpc_request, initialize_params):
        response = client.post("/mcp", json=sample_jsonrpc_request("session.negotiate", initialize_params))
        session_id = response.headers[SESSION_HEADER]
        assert response.json()["result"]["protocolVersion"] == "2024-11-05"

        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("capabilities.list"),
            headers={SESSION_HEADER: session_id},
        )
        assert len(response.json()["result"]["tools"]) == 21

        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("capabilities.invoke", {"name": "nope"}),
            headers={SESSION_HEADER: session_id},
        )
        assert response.json()["result"]["isError"] is True


class TestSessions:
    """Tests for session handling over the HTTP bridge."""

    def test_session_header_reuses_state(
        self, client: TestClient, bridge, sample_jsonrpc_request, initialize_params
    ):
        session_id = initialize(client, initialize_params)

        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("ping"),
            headers={SESSION_HEADER: session_id},
        )
        assert response.headers[SESSION_HEADER] == session_id
        assert bridge.session_count == 1

    def test_unknown_session_gets_a_new_one(self, client: TestClient, sample_jsonrpc_request):
        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("ping"),
            headers={SESSION_HEADER: "does-not-exist"},
        )
        assert response.headers[SESSION_HEADER] != "does-not-exist"

    def test_api_key_in_path(self, client: TestClient, sample_jsonrpc_request, initialize_params):
        path = f"/mcp/{VALID_KEY}"
        session_id = initialize(client, initialize_params, path=path)

        response = client.post(
            path,
            json=sample_jsonrpc_request("tools/call", {"name": "vector-store-list", "arguments": {}}),
            headers={SESSION_HEADER: session_id},
        )
        result = response.json()["result"]
        assert "isError" not in result
        assert json.loads(result["content"][0]["text"])["object"] == "list"

    def test_api_key_in_bearer_header(
        self, client: TestClient, sample_jsonrpc_request, initialize_params
    ):
        auth = {"Authorization": f"Bearer {VALID_KEY}"}
        session_id = initialize(client, initialize_params, **auth)

        response = client.post(
            "/mcp",
            json=sample_jsonrpc_request("tools/call", {"name": "vector-store-list", "arguments": {}}),
            headers={SESSION_HEADER: session_id, **auth},
        )
        assert "isError" not in response.json()["result"]


class TestEagerCredentialValidation:
    """initialize checks the credential against the backend when configured to."""

    @pytest.fixture(autouse=True)
    def eager(self, monkeypatch):
        monkeypatch.setenv("CREDENTIAL_VALIDATION", "eager")
        get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_missing_credential_fails_initialize(self, processor, handlers):
        response = await processor.handle_message(rpc("initialize"))

        assert response.error.code == INVALID_PARAMS
        assert handlers.session.initialized is False

    @pytest.mark.asyncio
    async def test_malformed_credential_fails_initialize(self, processor, initialize_params):
        response = await processor.handle_message(
            rpc("initialize", {**initialize_params, "initializationOptions": {"apiKey": "not-a-key"}})
        )
        assert response.error.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_rejected_credential_maps_backend_status(self, processor, initialize_params):
        response = await processor.handle_message(
            rpc("initialize", {**initialize_params, "initializationOptions": {"apiKey": "sk-wrong-key-1234567"}})
        )
        assert response.error.code == UNAUTHORIZED
        assert "sk-wrong-key-1234567" not in response.error.message

    @pytest.mark.asyncio
    async def test_valid_credential_initializes(self, processor, handlers, with_api_key):
        response = await processor.handle_message(rpc("initialize"))

        assert response.error is None
        assert handlers.session.initialized is True


class TestResponseFormat:
    """Tests for JSON-RPC response format compliance."""

    def test_response_has_matching_id(
        self, client: TestClient, sample_jsonrpc_request
    ):
        """Test that response id matches request id."""
        response = client.post("/mcp", json=sample_jsonrpc_request("tools/list", id=42))
        data = response.json()
        assert data["jsonrpc"] == "2.0"
        assert data["id"] == 42

    def test_string_id_is_echoed(self, client: TestClient):
        response = client.post("/mcp", content=rpc("ping", id="abc-1"))
        assert response.json()["id"] == "abc-1"

    def test_success_response_has_only_result(
        self, client: TestClient, sample_jsonrpc_request
    ):
        data = client.post("/mcp", json=sample_jsonrpc_request("tools/list")).json()
        assert "result" in data
        assert "error" not in data

    def test_error_response_has_only_error(
        self, client: TestClient, sample_jsonrpc_request
    ):
        data = client.post("/mcp", json=sample_jsonrpc_request("unknown/method")).json()
        assert "result" not in data
        assert data["error"]["code"] is not None
        assert data["error"]["message"]
