"""
Request context middleware for log correlation.

Propagates X-Request-ID and tags log records with the side game the
request targets, so every line a hole entry produces can be grouped.
"""

import logging
import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from logging_config import game_id_var, request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_GAME_PATH = re.compile(r"^/api/side-games/(?P<game_id>[0-9a-fA-F-]{36})(?:/|$)")


def game_id_from_path(path: str):
    """Extract the game id from a side-game URL, or None."""
    match = _GAME_PATH.match(path)
    return match.group("game_id") if match else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Sets request_id and game_id context vars for the duration of a request.

    The request id is taken from the incoming header or generated, and
    echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        game_token = game_id_var.set(game_id_from_path(request.url.path))
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            game_id_var.reset(game_token)
            request_id_var.reset(request_token)
