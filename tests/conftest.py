"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import httpx
import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flux_mcp.image.client import DashScopeClient  # noqa: E402
from flux_mcp.image.provider_config import FluxConfig  # noqa: E402
from flux_mcp.image.service import ImageToolService  # noqa: E402


BASE_URL = "https://dashscope.test/api/v1"


class FakeDashScope:
    """In-memory stand-in for the DashScope API and its artifact CDN.

    Attributes:
        submit_response: Body returned for job submission.
        task_status: Body returned for `/tasks/{task_id}`.
        artifacts: url -> bytes, or url -> int status for failing artifacts.
        requests: Every request seen, in order.
    """

    def __init__(self):
        self.submit_response = {
            "output": {"task_id": "task-123", "task_status": "PENDING"},
            "request_id": "req-1",
        }
        self.task_status = {"output": {"task_id": "task-123", "task_status": "PENDING"}}
        self.artifacts = {}
        self.status_error = None
        self.requests = []

    def succeed_with(self, urls):
        self.task_status = {
            "request_id": "req-2",
            "output": {
                "task_id": "task-123",
                "task_status": "SUCCEEDED",
                "results": [{"url": url} for url in urls],
            },
        }

    def artifact_requests(self):
        return [r for r in self.requests if not str(r.url).startswith(BASE_URL)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == f"{BASE_URL}/services/aigc/text2image/image-synthesis":
            return httpx.Response(200, json=self.submit_response)

        if url.startswith(f"{BASE_URL}/tasks/"):
            if self.status_error is not None:
                status_code, body = self.status_error
                return httpx.Response(status_code, json=body)
            return httpx.Response(200, json=self.task_status)

        artifact = self.artifacts.get(url)
        if artifact is None:
            return httpx.Response(404, text="not found")
        if isinstance(artifact, int):
            return httpx.Response(artifact, json={"code": "Forbidden", "status": artifact})
        return httpx.Response(200, content=artifact)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def config(tmp_path):
    return FluxConfig(
        api_key="test-key",
        save_dir=str(tmp_path / "saved"),
        work_dir=str(tmp_path / "work"),
        model_name="flux-merged",
        base_url=BASE_URL,
        timeout_seconds=5.0,
        retry_attempts=1,
        backoff_seconds=0.0,
    )


@pytest.fixture
def fake_api():
    return FakeDashScope()


@pytest.fixture
def client(config, fake_api):
    return DashScopeClient(config, transport=fake_api.transport())


@pytest.fixture
def service(client):
    return ImageToolService(client)
