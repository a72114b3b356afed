"""Destination resolution for downloaded artifacts.

Architectural role:
    Turns the caller's `save_path`/`base_dir` hints into a `ResolvedTarget`
    (absolute directory + optional first-file name) and prepares that
    directory before any artifact is fetched.

Resolution strategy:
    1. `base_dir` falls back to the configured working directory.
    2. No `save_path` -> configured save directory, no filename override.
    3. `save_path` is classified as file or directory by `classify_save_path`.
    4. Relative directories are joined onto `base_dir`.

Path-kind heuristic:
    A path is a file when its last component has an extension. Extension-less
    file names and dotted directory names are misclassified; the heuristic is
    kept in `classify_save_path` only.

Determinism:
    `classify_save_path` and `resolve_destination` are pure apart from
    `os.getcwd()` for still-relative results. `ensure_directory` is the only
    filesystem mutation.
"""

import logging
import os

from flux_mcp.image.models import ResolvedTarget
from flux_mcp.image.provider_config import FluxConfig


logger = logging.getLogger(__name__)

_SEPARATORS = tuple({os.sep, os.altsep or os.sep, "/"})


def _strip_trailing_separators(path: str) -> str:
    stripped = path.rstrip("".join(_SEPARATORS))
    if not stripped and path:
        # Root directory itself.
        return path[0]
    return stripped


def _parse(path: str) -> tuple[str, str, str]:
    """Split `path` into (parent, base name, extension).

    Trailing separators are ignored, so `/tmp/out/` parses as parent `/tmp`,
    base `out`.
    """
    stripped = _strip_trailing_separators(path)
    base = os.path.basename(stripped)
    parent = os.path.dirname(stripped)
    ext = os.path.splitext(base)[1]
    return parent, base, ext


def classify_save_path(save_path: str) -> tuple[str, str | None]:
    """Classify `save_path` as file or directory.

    Args:
        save_path: Non-empty caller-supplied path.

    Returns:
        `(target_dir, filename_override)`. `target_dir` may be `""` (bare
        filename, to be joined with the base directory) or relative.

    Examples:
        `/tmp/out/pic.png` -> (`/tmp/out`, `pic.png`)
        `report.png`       -> (``, `report.png`)
        `/tmp/out/`        -> (`/tmp/out/`, None)
    """
    parent, base, ext = _parse(save_path)

    if ext and base != parent:
        if not any(sep in save_path for sep in _SEPARATORS):
            return "", save_path
        return parent, base

    return save_path, None


def resolve_destination(
    config: FluxConfig,
    save_path: str | None = None,
    base_dir: str | None = None,
) -> ResolvedTarget:
    """Compute the absolute target directory and optional first filename.

    Args:
        config: Supplies `save_dir` and the `work_dir` fallback base.
        save_path: Optional file or directory hint.
        base_dir: Optional base for relative targets.

    Returns:
        `ResolvedTarget` for the download batch.
    """
    base = base_dir or config.work_dir

    if save_path:
        target_dir, filename_override = classify_save_path(save_path)
    else:
        target_dir, filename_override = config.save_dir, None

    if target_dir and os.path.isabs(target_dir):
        directory = target_dir
    elif target_dir:
        directory = os.path.join(base, target_dir)
    else:
        directory = base

    directory = _strip_trailing_separators(directory)
    if not os.path.isabs(directory):
        directory = os.path.abspath(directory)

    logger.info(
        "Resolving path: %s against base: %s => %s",
        target_dir or "(empty)",
        base,
        directory,
    )
    return ResolvedTarget(directory=directory, filename_override=filename_override)


def ensure_directory(target: ResolvedTarget) -> None:
    """Create `target.directory` and any missing ancestors.

    Raises:
        OSError: When the directory cannot be created (permissions, a file in
            the way, read-only filesystem).
    """
    if not os.path.isdir(target.directory):
        os.makedirs(target.directory, exist_ok=True)
