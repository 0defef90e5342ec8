"""Transport adapters exposing the core tools over MCP."""
