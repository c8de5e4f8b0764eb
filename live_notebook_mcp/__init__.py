"""
Live Notebook MCP Server.

This package provides a Model Context Protocol (MCP) server that lets an
automated caller edit and execute cells of a live Jupyter notebook, waiting
for kernel completion and returning bounded text output.
"""

__all__ = []

# Components are imported directly where needed (e.g., in server.py)
