"""MCP server exposing the sync operations as tools over stdio."""
