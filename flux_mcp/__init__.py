"""flux-mcp: MCP stdio server for DashScope asynchronous image generation.

Architectural role:
    Exposes image generation, task status and artifact download tools to MCP
    clients.

Package split:
    - `image`: configuration, HTTP client, destination resolution, tool service.
    - `api`: MCP server adapter and process entrypoint.
"""

__version__ = "0.1.0"
