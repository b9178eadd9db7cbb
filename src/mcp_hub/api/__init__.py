"""
API HTTP de contrôle de MCP Hub.
"""

from .router import api_router

__all__ = ["api_router"]
