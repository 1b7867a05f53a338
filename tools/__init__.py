# =============================================================================
# tools/__init__.py
# =============================================================================
# The MCP-facing layer.
#
#   handlers.py    tool name → adapter call → text, plus the error boundary
#   mcp_server.py  FastMCP declarations (names, docstrings, typed params)
#
# Tools hold no Dataverse logic; request building and response shaping
# live in core/dataverse.py.
# =============================================================================
