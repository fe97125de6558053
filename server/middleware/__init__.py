"""
Middleware components for the side-game server.

Provides:
- RequestContextMiddleware: X-Request-ID propagation and game_id log tagging
"""

from .request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
