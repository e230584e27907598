"""
Presentation layer - CLI, MCP server and output formatters.

Only this layer (and ``code_search.settings``) reads the environment.
"""
