"""MCP stdio transport."""
