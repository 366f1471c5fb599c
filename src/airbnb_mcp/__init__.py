"""Airbnb MCP server: search and listing detail tools over the Model Context Protocol."""

__version__ = "0.1.0"
