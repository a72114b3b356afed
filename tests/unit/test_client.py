"""
tests/unit/test_client.py

Tests for DashScopeClient request shaping and error paths.

Verifies:
✔ Submission sends model/input/parameters with async + bearer headers
✔ Status query hits /tasks/{task_id}
✔ Artifact fetch returns raw bytes without API headers
✔ HTTP errors raise RemoteApiError carrying the remote body
✔ Transport errors raise RemoteApiError with the error message
✔ Transient statuses are retried up to retry_attempts
"""

import json
from dataclasses import replace

import httpx
import pytest

from flux_mcp.image.client import DashScopeClient, RemoteApiError


class TestRequests:
    @pytest.mark.asyncio
    async def test_submit_generation_headers_and_body(self, client, fake_api):
        payload = {"model": "flux-merged", "input": {"prompt": "fox"}, "parameters": {}}

        data = await client.submit_generation(payload)

        assert data == fake_api.submit_response
        request = fake_api.requests[0]
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert request.headers["X-DashScope-Async"] == "enable"
        assert json.loads(request.content) == payload

    @pytest.mark.asyncio
    async def test_get_task_url(self, client, config, fake_api):
        await client.get_task("task-123")

        assert str(fake_api.requests[0].url) == f"{config.base_url}/tasks/task-123"
        assert fake_api.requests[0].method == "GET"

    @pytest.mark.asyncio
    async def test_fetch_artifact_returns_bytes(self, client, fake_api):
        fake_api.artifacts["https://cdn.test/a.png"] = b"\x89PNGdata"

        content = await client.fetch_artifact("https://cdn.test/a.png")

        assert content == b"\x89PNGdata"
        assert "Authorization" not in fake_api.requests[0].headers

    @pytest.mark.asyncio
    async def test_missing_key_sends_no_authorization(self, config, fake_api):
        client = DashScopeClient(replace(config, api_key=None), transport=fake_api.transport())

        await client.get_task("task-123")

        assert "Authorization" not in fake_api.requests[0].headers


class TestErrors:
    @pytest.mark.asyncio
    async def test_http_error_carries_json_body(self, client, fake_api):
        fake_api.status_error = (400, {"code": "InvalidParameter", "message": "bad task"})

        with pytest.raises(RemoteApiError) as exc_info:
            await client.get_task("nope")

        err = exc_info.value
        assert err.status_code == 400
        assert err.body == {"code": "InvalidParameter", "message": "bad task"}
        assert json.loads(err.detail()) == err.body

    @pytest.mark.asyncio
    async def test_http_error_with_text_body(self, client):
        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_artifact("https://cdn.test/missing.png")

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail() == '"not found"'

    @pytest.mark.asyncio
    async def test_transport_error_uses_message(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = DashScopeClient(config, transport=httpx.MockTransport(handler))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.get_task("task-123")

        assert exc_info.value.status_code is None
        assert exc_info.value.detail() == "connection refused"


class TestRetry:
    @pytest.mark.asyncio
    async def test_transient_status_retried(self, config):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, json={"message": "busy"})
            return httpx.Response(200, json={"output": {"task_status": "RUNNING"}})

        client = DashScopeClient(
            replace(config, retry_attempts=2), transport=httpx.MockTransport(handler)
        )

        data = await client.get_task("task-123")

        assert data == {"output": {"task_status": "RUNNING"}}
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json={"message": "busy"})

        client = DashScopeClient(config, transport=httpx.MockTransport(handler))

        with pytest.raises(RemoteApiError):
            await client.get_task("task-123")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self, config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"code": "InvalidApiKey"})

        client = DashScopeClient(
            replace(config, retry_attempts=3), transport=httpx.MockTransport(handler)
        )

        with pytest.raises(RemoteApiError) as exc_info:
            await client.submit_generation({"model": "m"})

        assert exc_info.value.status_code == 401
        assert len(calls) == 1
