"""
Fonctionnalités de MCP Hub: serveurs MCP hébergés et client catalogue.
"""
