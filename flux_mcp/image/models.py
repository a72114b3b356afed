"""Data contracts for the image tools.

Architectural role:
    Defines the typed boundary between raw MCP tool arguments and the tool
    service. Argument models are pydantic models with strict field types, so an
    untyped `dict` never travels past `flux_mcp.api.server`.

Validation behavior:
    - `GenerationRequest`: `prompt` must be a string; `size`, `seed` and
      `steps` must have the right type when present.
    - `TaskStatusArgs`: `task_id` must be a string.
    - `DownloadArgs`: `save_path` must be absolute when non-empty; empty
      strings for `save_path`/`base_dir` are normalized to `None`.

Determinism:
    All models are pure value objects. Only `GenerationRequest.resolved_seed`
    draws randomness, and only when no seed was supplied.
"""

import os
import random
from dataclasses import asdict, dataclass, field

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, field_validator


DEFAULT_SIZE = "1024*1024"
DEFAULT_STEPS = 4
SEED_RANGE = 1000


class GenerationRequest(BaseModel):
    """Arguments of `generate_image`."""

    model_config = ConfigDict(frozen=True)

    prompt: StrictStr
    size: StrictStr | None = None
    seed: StrictInt | None = None
    steps: StrictInt | None = None

    def to_payload(self, model_name: str) -> dict:
        """Build the DashScope submission body with defaults applied."""
        return {
            "model": model_name,
            "input": {
                "prompt": self.prompt,
            },
            "parameters": {
                "size": self.size or DEFAULT_SIZE,
                "seed": self.resolved_seed(),
                "steps": self.steps if self.steps is not None else DEFAULT_STEPS,
            },
        }

    def resolved_seed(self) -> int:
        if self.seed is not None:
            return self.seed
        return random.randrange(SEED_RANGE)


class TaskStatusArgs(BaseModel):
    """Arguments of `check_task_status`."""

    model_config = ConfigDict(frozen=True)

    task_id: StrictStr


class DownloadArgs(TaskStatusArgs):
    """Arguments of `download_image`."""

    save_path: StrictStr | None = None
    base_dir: StrictStr | None = None

    @field_validator("save_path")
    @classmethod
    def _require_absolute(cls, value):
        if not value:
            return None
        if not os.path.isabs(value):
            raise ValueError(
                f'Invalid save_path: "{value}". Must be an absolute path '
                "(e.g. /Users/username/Downloads/image.jpg)"
            )
        return value

    @field_validator("base_dir")
    @classmethod
    def _empty_base_dir_is_absent(cls, value):
        return value or None


@dataclass(frozen=True)
class ResolvedTarget:
    """Concrete destination computed from `save_path`/`base_dir` hints.

    Attributes:
        directory: Absolute directory every artifact is written into.
        filename_override: Name used for artifact 0 only, when set.
    """

    directory: str
    filename_override: str | None = None

    def filename_for(self, task_id: str, index: int) -> str:
        if index == 0 and self.filename_override:
            return self.filename_override
        return f"{task_id}_{index}.png"

    def path_for(self, task_id: str, index: int) -> str:
        return os.path.join(self.directory, self.filename_for(task_id, index))


@dataclass(frozen=True)
class DownloadResult:
    url: str
    saved_to: str


@dataclass(frozen=True)
class DownloadFailure:
    url: str
    error: str


@dataclass
class DownloadReport:
    """Aggregate outcome of one `download_image` call."""

    task_id: str
    downloads: list[DownloadResult] = field(default_factory=list)
    failures: list[DownloadFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        if self.failures:
            message = "Image download partially completed"
        else:
            message = "Image download completed"

        data = {
            "message": message,
            "task_id": self.task_id,
            "downloads": [asdict(item) for item in self.downloads],
        }
        if self.failures:
            data["failures"] = [asdict(item) for item in self.failures]
        return data


@dataclass(frozen=True)
class ToolResult:
    """Transport-neutral tool outcome.

    Converted to an MCP `CallToolResult` by `flux_mcp.api.server`.
    """

    text: str
    is_error: bool = False
