"""
MCP tool adapter for the flux-mcp image service.

Architectural role:
- Expose the image tools through an MCP low-level `Server`.
- Enforce adapter-level argument validation via pydantic models.
- Delegate tool work to `flux_mcp.image.service.ImageToolService`.
- Convert `ToolResult` values to MCP `CallToolResult` payloads.

Endpoint responsibilities:
- `tools/list`: advertise `generate_image`, `check_task_status`,
  `download_image` with their JSON schemas.
- `tools/call`: validate arguments, dispatch by tool name, and return the
  text result with `isError` set for recognized failures.

Input validation behavior:
- Malformed arguments -> MCP error `INVALID_PARAMS`, raised before any I/O.
- Unknown tool name -> MCP error `METHOD_NOT_FOUND`.

Error handling strategy:
- Remote, workflow and filesystem failures arrive as error-flagged
  `ToolResult` values and never raise.
- Unexpected exceptions are not wrapped here; the MCP session reports them as
  JSON-RPC errors and the process keeps serving.
"""

from mcp import types
from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from flux_mcp import __version__
from flux_mcp.image.models import DownloadArgs, GenerationRequest, TaskStatusArgs, ToolResult
from flux_mcp.image.service import ImageToolService


SERVER_NAME = "flux-mcp"


TOOLS = [
    types.Tool(
        name="generate_image",
        description="Generate images using Alibaba Cloud DashScope API",
        inputSchema={
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "Image generation prompt",
                },
                "size": {
                    "type": "string",
                    "description": 'Image size, available options: "1024*1024", "720*1280", "1280*720"',
                    "default": "1024*1024",
                },
                "seed": {
                    "type": "number",
                    "description": "Random seed",
                },
                "steps": {
                    "type": "number",
                    "description": "Iteration steps",
                },
            },
            "required": ["prompt"],
        },
    ),
    types.Tool(
        name="check_task_status",
        description="Check image generation task status",
        inputSchema={
            "type": "object",
            "properties": {
                "task_id": {
                    "type": "string",
                    "description": "Task ID",
                },
            },
            "required": ["task_id"],
        },
    ),
    types.Tool(
        name="download_image",
        description="Download generated images and save them locally",
        inputSchema={
            "type": "object",
            "properties": {
                "task_id": {
                    "type": "string",
                    "description": "Task ID",
                },
                "save_path": {
                    "type": "string",
                    "description": (
                        "Absolute path where to save the file "
                        "(e.g. /Users/username/Downloads/image.jpg). Must be an absolute path."
                    ),
                },
                "base_dir": {
                    "type": "string",
                    "description": (
                        "Base directory for resolving relative paths. Defaults to "
                        "WORK_DIR environment variable or current working directory"
                    ),
                },
            },
            "required": ["task_id"],
        },
    ),
]


def _invalid_params(message: str) -> McpError:
    return McpError(types.ErrorData(code=types.INVALID_PARAMS, message=message))


def _validate(model, arguments, message: str):
    """Parse raw tool arguments into `model` or raise `INVALID_PARAMS`."""
    if not isinstance(arguments, dict):
        raise _invalid_params(message)
    try:
        return model.model_validate(arguments)
    except ValidationError as err:
        details = "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or 'arguments'}: {e['msg']}"
            for e in err.errors()
        )
        raise _invalid_params(f"{message} ({details})") from err


async def dispatch_tool(service: ImageToolService, name: str, arguments) -> ToolResult:
    """Route one tool call by name.

    Raises:
        McpError: `INVALID_PARAMS` for malformed arguments, `METHOD_NOT_FOUND`
            for unknown tool names.
    """
    if name == "generate_image":
        request = _validate(GenerationRequest, arguments, "Invalid image generation parameters")
        return await service.generate_image(request)

    if name == "check_task_status":
        args = _validate(TaskStatusArgs, arguments, "Invalid task ID parameter")
        return await service.check_task_status(args.task_id)

    if name == "download_image":
        args = _validate(DownloadArgs, arguments, "Invalid task ID parameter")
        return await service.download_image(args)

    raise McpError(
        types.ErrorData(code=types.METHOD_NOT_FOUND, message=f"Unknown tool: {name}")
    )


def to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=result.is_error,
    )


def build_server(service: ImageToolService) -> Server:
    """Create the MCP server with tool listing and call handlers registered.

    The call handler is registered directly on `request_handlers` so the
    `isError` flag of each `ToolResult` reaches the client unchanged.
    """
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return TOOLS

    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        result = await dispatch_tool(service, request.params.name, request.params.arguments)
        return types.ServerResult(to_call_tool_result(result))

    server.request_handlers[types.CallToolRequest] = call_tool
    return server
