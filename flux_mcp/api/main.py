"""
Stdio entrypoint for the flux-mcp server.

Architectural role:
- Provides the process boundary around the MCP tool server.
- Loads configuration once and wires config -> client -> service -> server.
- Runs the MCP session over stdin/stdout until the client disconnects.

Startup lifecycle:
1. Configure stderr logging (stdout carries the protocol).
2. Build `FluxConfig` from `.env` and the environment.
3. Create the default save directory when missing.
4. Serve MCP requests over stdio.

Error handling strategy:
- Configuration or save-directory failures abort startup with exit code 1.
- Keyboard interrupts end the process with exit code 0.
- Tool-level failures are returned to the client and never stop the process.
"""

import asyncio
import logging
import os
import sys

from mcp.server.stdio import stdio_server

from flux_mcp.api.server import build_server
from flux_mcp.image.client import DashScopeClient
from flux_mcp.image.provider_config import load_config
from flux_mcp.image.service import ImageToolService


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def serve(config) -> None:
    """Run one MCP session over stdio with `config`."""
    service = ImageToolService(DashScopeClient(config))
    server = build_server(service)

    async with stdio_server() as (read_stream, write_stream):
        logger.info("flux-mcp server running (model=%s)", config.model_name)
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> int:
    """
    Start the server and return the process exit code.

    Error handling strategy:
    - Invalid configuration values -> exit code 1.
    - Unwritable default save directory -> exit code 1.
    - EOF on stdin ends the session normally -> exit code 0.
    """
    configure_logging()

    try:
        config = load_config()
    except ValueError:
        logger.exception("Invalid configuration")
        return 1

    if not config.api_key:
        logger.warning("DASHSCOPE_API_KEY is not set; remote calls will be rejected")

    try:
        os.makedirs(config.save_dir, exist_ok=True)
    except OSError:
        logger.exception("Cannot create save directory %s", config.save_dir)
        return 1

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
