"""Image tool service used by the MCP dispatch layer.

Role in pipeline:
    - Receives validated argument models from `flux_mcp.api.server`.
    - Calls `DashScopeClient` for submission, status and artifact fetches.
    - Resolves local destinations and writes artifacts for `download_image`.
    - Returns `ToolResult` values; the server converts them to MCP results.

Retrieval lifecycle (`download_image`):
    START -> STATUS_FETCHED -> INCOMPLETE | NO_ARTIFACTS
          | DIR_RESOLVED -> DIR_READY -> DOWNLOADING(i) -> DONE
    with DIR_CREATE_FAILED and FETCH_OR_WRITE_FAILED as failure exits.

Error handling strategy:
    - `RemoteApiError` -> error-flagged `API request error: ...` result.
    - Incomplete task / missing artifact URLs -> error-flagged results.
    - Directory creation `OSError` -> error-flagged result before any fetch.
    - Artifact failures follow `FluxConfig.failure_policy`.
    - Anything else propagates to the dispatch layer.

Determinism:
    Destination resolution is deterministic for fixed inputs and filesystem
    state. Remote status and generated content are not.
"""

import json
import logging

from flux_mcp.image.client import DashScopeClient, RemoteApiError
from flux_mcp.image.destination import ensure_directory, resolve_destination
from flux_mcp.image.models import (
    DownloadArgs,
    DownloadFailure,
    DownloadReport,
    DownloadResult,
    GenerationRequest,
    ToolResult,
)
from flux_mcp.image.provider_config import ArtifactFailurePolicy


logger = logging.getLogger(__name__)

SUCCEEDED = "SUCCEEDED"


def _as_json(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _api_error(err: RemoteApiError) -> ToolResult:
    return ToolResult(f"API request error: {err.detail()}", is_error=True)


def _task_output(status: dict) -> dict:
    output = status.get("output") if isinstance(status, dict) else None
    return output if isinstance(output, dict) else {}


def extract_artifact_urls(status: dict) -> list[str]:
    """Return `output.results[].url` in remote order, skipping entries without a URL."""
    results = _task_output(status).get("results") or []
    return [item["url"] for item in results if isinstance(item, dict) and item.get("url")]


def _write_artifact(path: str, content: bytes) -> None:
    with open(path, "wb") as f:
        f.write(content)


class ImageToolService:
    """Implements `generate_image`, `check_task_status` and `download_image`.

    The service is stateless between calls; it only holds the shared client
    and its immutable configuration.
    """

    def __init__(self, client: DashScopeClient) -> None:
        self.client = client
        self.config = client.config

    async def generate_image(self, request: GenerationRequest) -> ToolResult:
        """Submit a generation job and return the remote response verbatim."""
        payload = request.to_payload(self.config.model_name)
        try:
            data = await self.client.submit_generation(payload)
        except RemoteApiError as err:
            return _api_error(err)
        return ToolResult(_as_json(data))

    async def check_task_status(self, task_id: str) -> ToolResult:
        """Return the current remote task state verbatim."""
        try:
            data = await self.client.get_task(task_id)
        except RemoteApiError as err:
            return _api_error(err)
        return ToolResult(_as_json(data))

    async def download_image(self, args: DownloadArgs) -> ToolResult:
        """Download every artifact of a finished task into the resolved target.

        Args:
            args: Validated task id and destination hints.

        Returns:
            Success result with the download report, or an error-flagged
            result for remote, workflow, filesystem or artifact failures.
        """
        try:
            status = await self.client.get_task(args.task_id)
        except RemoteApiError as err:
            return _api_error(err)

        if _task_output(status).get("task_status") != SUCCEEDED:
            return ToolResult(
                f"Task not completed or failed: {_as_json(status)}",
                is_error=True,
            )

        urls = extract_artifact_urls(status)
        if not urls:
            return ToolResult("No image URL found", is_error=True)

        target = resolve_destination(self.config, args.save_path, args.base_dir)
        try:
            ensure_directory(target)
        except OSError as err:
            logger.exception("Failed to create directory %s", target.directory)
            return ToolResult(f"Failed to create directory: {err}", is_error=True)

        report = DownloadReport(task_id=args.task_id)
        best_effort = self.config.failure_policy is ArtifactFailurePolicy.BEST_EFFORT

        for index, url in enumerate(urls):
            save_path = target.path_for(args.task_id, index)

            try:
                content = await self.client.fetch_artifact(url)
            except RemoteApiError as err:
                if not best_effort:
                    return _api_error(err)
                report.failures.append(DownloadFailure(url=url, error=err.detail()))
                continue

            try:
                _write_artifact(save_path, content)
            except OSError as err:
                logger.exception("Failed to save image to %s", save_path)
                if not best_effort:
                    return ToolResult(f"Failed to save image: {err}", is_error=True)
                report.failures.append(DownloadFailure(url=url, error=str(err)))
                continue

            report.downloads.append(DownloadResult(url=url, saved_to=save_path))

        return ToolResult(_as_json(report.to_dict()), is_error=not report.downloads)
