"""flux-mcp adapter package.

Architectural role:
- Defines the external interaction boundary (MCP over stdio).
- Performs transport-level validation and response shaping.
- Delegates tool work to the image service layer.
"""
