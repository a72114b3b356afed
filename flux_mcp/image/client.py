"""DashScope async image-generation HTTP client.

Processing flow:
    1. Receive the shared `FluxConfig` (endpoint, key, timeouts, retries).
    2. Submit JSON payloads to the synthesis endpoint in async mode.
    3. Read task state from the task endpoint.
    4. Fetch generated artifacts as raw bytes.

Base64 and temporary files:
    - No Base64 decoding is performed.
    - No temporary files are created; artifact bytes are returned to the caller.

Error handling strategy:
    - Non-2xx responses and transport failures are raised as `RemoteApiError`,
      carrying the remote error body when one was returned.
    - Statuses 429/500/502/503/504 and transport errors are retried up to
      `retry_attempts` total attempts with exponential backoff.

Determinism:
    - Request assembly is deterministic for fixed inputs/configuration.
    - Task progression and generated output are externally non-deterministic.

Security considerations:
    - The API key is sent as a bearer header and never logged.
    - `RemoteApiError` messages may include upstream response bodies.
"""

import asyncio
import json
import logging
from typing import Any

import httpx

from flux_mcp.image.provider_config import SUBMIT_ENDPOINT, TASK_ENDPOINT, FluxConfig


logger = logging.getLogger(__name__)

_RETRY_STATUSES = (429, 500, 502, 503, 504)


class RemoteApiError(RuntimeError):
    """Remote API or transport failure.

    Attributes:
        status_code: HTTP status when a response was received, else `None`.
        body: Parsed (or raw text) error body when available.
    """

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def detail(self) -> str:
        """Return the remote error body as JSON text, or the error message."""
        if self.body is not None and self.body != "":
            return json.dumps(self.body, ensure_ascii=False)
        return str(self)

    @classmethod
    def from_httpx(cls, err: httpx.HTTPError) -> "RemoteApiError":
        if not isinstance(err, httpx.HTTPStatusError):
            return cls(str(err) or err.__class__.__name__)

        response = err.response
        try:
            body = response.json()
        except ValueError:
            body = response.text
        return cls(str(err), status_code=response.status_code, body=body)


class DashScopeClient:
    """Thin async client over the DashScope task API.

    Usage:
        client = DashScopeClient(config)
        submitted = await client.submit_generation(payload)
        status = await client.get_task(submitted["output"]["task_id"])

    Guarantees:
    - One logical call per method; no caching between calls.
    - Raises `RemoteApiError` for every HTTP/transport failure.
    """

    def __init__(
        self,
        config: FluxConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Shared runtime configuration.
            transport: Optional httpx transport override (tests use
                `httpx.MockTransport`).
        """
        self.config = config
        self._transport = transport

    def _api_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-DashScope-Async": "enable",
        }
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _backoff(self, attempt: int) -> float:
        return self.config.backoff_seconds * (2 ** attempt)

    async def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Execute one HTTP request with retry/backoff for transient failures.

        Raises:
            RemoteApiError: On non-2xx status or transport failure after
                retry exhaustion.
        """
        attempts = max(1, self.config.retry_attempts)

        for attempt in range(attempts):
            try:
                async with httpx.AsyncClient(
                    timeout=self.config.timeout_seconds,
                    follow_redirects=True,
                    headers=headers,
                    transport=self._transport,
                ) as client:
                    response = await client.request(method, url, json=json_body)

                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status in _RETRY_STATUSES and attempt < attempts - 1:
                    await asyncio.sleep(self._backoff(attempt))
                    continue
                logger.warning("%s %s failed with status %s", method, url, status)
                raise RemoteApiError.from_httpx(exc) from exc

            except httpx.RequestError as exc:
                if attempt < attempts - 1:
                    await asyncio.sleep(self._backoff(attempt))
                    continue
                logger.warning("%s %s failed: %s", method, url, exc)
                raise RemoteApiError.from_httpx(exc) from exc

        raise RemoteApiError(f"Request failed without error details for url={url}")

    async def submit_generation(self, payload: dict) -> dict:
        """Submit an async text-to-image job and return the raw response body."""
        logger.debug("Submitting generation job for model=%s", payload.get("model"))
        response = await self._request(
            "POST",
            self.config.base_url + SUBMIT_ENDPOINT,
            headers=self._api_headers(),
            json_body=payload,
        )
        return response.json()

    async def get_task(self, task_id: str) -> dict:
        """Fetch the current remote state of `task_id`."""
        logger.debug("Fetching task status for task_id=%s", task_id)
        response = await self._request(
            "GET",
            self.config.base_url + TASK_ENDPOINT.format(task_id=task_id),
            headers=self._api_headers(),
        )
        return response.json()

    async def fetch_artifact(self, url: str) -> bytes:
        """Download one generated artifact.

        Artifact URLs are pre-signed, so no API headers are attached.
        """
        response = await self._request("GET", url)
        return response.content
