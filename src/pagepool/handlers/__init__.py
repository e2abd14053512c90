"""
Request handlers.

    connection_handler.py   One accepted connection → one response
"""

from .connection_handler import ConnectionHandler

__all__ = ["ConnectionHandler"]
