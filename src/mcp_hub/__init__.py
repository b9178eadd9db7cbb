"""
MCP Hub - bridge MCP multi-serveurs (stdio ou SSE multiplexé).
"""

__version__ = "1.0.0"
