"""
Request ID Middleware

Tags every request with an id for tracing through logs and error bodies.
"""
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from ...core.logging_config import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_UPSTREAM_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses an upstream ``X-Request-ID`` when present, otherwise generates one.

    The id is stored in ``request.state.request_id``, bound to the logging
    context for the life of the request and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if not request_id or len(request_id) > _MAX_UPSTREAM_ID_LENGTH:
            request_id = uuid.uuid4().hex

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
