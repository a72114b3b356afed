"""Provider/runtime configuration for the image layer.

Architectural role:
    Centralizes DashScope endpoint selection, credential lookup, and local
    directory defaults consumed by `flux_mcp.image.client` and
    `flux_mcp.image.service`.

Call flow integration:
    - `api.main` calls `load_config()` once at startup.
    - The resulting `FluxConfig` is passed by reference into the client and the
      tool service; no module below this one reads the environment.

Determinism:
    Deterministic for a fixed process environment and key file. Values are
    resolved when `load_config()` runs (plus the key-file read in `load_key`).

Failure behavior:
    Missing key material is represented as `None`. Malformed numeric variables
    raise `ValueError` at startup.
"""

import os
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv


DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com/api/v1"
DEFAULT_MODEL_NAME = "flux-merged"
DEFAULT_KEY_FILE = "config/dashscope.key"

# Remote endpoints relative to `base_url`.
SUBMIT_ENDPOINT = "/services/aigc/text2image/image-synthesis"
TASK_ENDPOINT = "/tasks/{task_id}"


class ArtifactFailurePolicy(str, Enum):
    """How `download_image` reacts to one artifact failing."""

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


@dataclass(frozen=True)
class FluxConfig:
    """Immutable runtime configuration shared by every tool invocation.

    Relevant environment variables (see `load_config`):
        - `DASHSCOPE_API_KEY` / `config/dashscope.key`
        - `SAVE_DIR`, `WORK_DIR`, `MODEL_NAME`
        - `DASHSCOPE_BASE_URL`, `DASHSCOPE_TIMEOUT_SECONDS`
        - `DASHSCOPE_RETRY_ATTEMPTS`, `DASHSCOPE_BACKOFF_SECONDS`
        - `DOWNLOAD_FAILURE_POLICY`
    """

    api_key: str | None
    save_dir: str
    work_dir: str
    model_name: str = DEFAULT_MODEL_NAME
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 60.0
    retry_attempts: int = 1
    backoff_seconds: float = 0.5
    failure_policy: ArtifactFailurePolicy = ArtifactFailurePolicy.FAIL_FAST


def default_save_dir() -> str:
    """Return the fallback save directory under the user's desktop."""
    return os.path.join(os.path.expanduser("~"), "Desktop", "flux-images")


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/dashscope.key` -> `DASHSCOPE_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
        - Whitespace-only file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def load_config(key_file: str = DEFAULT_KEY_FILE) -> FluxConfig:
    """Build the process-wide `FluxConfig` from `.env` and the environment.

    Args:
        key_file: Key file consulted when `DASHSCOPE_API_KEY` is unset.

    Returns:
        Frozen configuration value.

    Raises:
        ValueError: For non-numeric timeout/retry/backoff values or an unknown
            `DOWNLOAD_FAILURE_POLICY`.
    """
    load_dotenv()

    return FluxConfig(
        api_key=load_key(key_file),
        save_dir=os.getenv("SAVE_DIR") or default_save_dir(),
        work_dir=os.getenv("WORK_DIR") or os.getcwd(),
        model_name=os.getenv("MODEL_NAME") or DEFAULT_MODEL_NAME,
        base_url=(os.getenv("DASHSCOPE_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        timeout_seconds=float(os.getenv("DASHSCOPE_TIMEOUT_SECONDS", "60")),
        retry_attempts=int(os.getenv("DASHSCOPE_RETRY_ATTEMPTS", "1")),
        backoff_seconds=float(os.getenv("DASHSCOPE_BACKOFF_SECONDS", "0.5")),
        failure_policy=ArtifactFailurePolicy(
            os.getenv("DOWNLOAD_FAILURE_POLICY", "fail_fast").strip().lower()
        ),
    )
