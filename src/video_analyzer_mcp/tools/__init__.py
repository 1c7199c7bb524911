"""MCP tool sub-servers."""
