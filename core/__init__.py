# =============================================================================
# core/__init__.py
# =============================================================================
# The Dataverse adapter and everything it needs: models, settings, errors.
#
# Nothing in this package imports FastMCP or knows that tools exist.  The
# adapter can be used from a script or a notebook just as well as from the
# MCP server.
# =============================================================================
