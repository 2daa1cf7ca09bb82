"""MCP server exposing the context tools."""
