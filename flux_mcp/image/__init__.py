"""Image generation adapter package.

Scope:
    Provides the DashScope task client, destination resolution for downloaded
    artifacts, and the tool service used by the MCP adapter.

Module split:
    - `provider_config`: environment-driven immutable configuration.
    - `models`: argument models and result value objects.
    - `client`: async HTTP transport for submission, status and artifacts.
    - `destination`: save-path classification and directory preparation.
    - `service`: the three tool operations.
"""
