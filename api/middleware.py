"""Request-scoped middleware for API requests."""

import re
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Inbound IDs from a proxy are reused only if they look like an ID
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Gives every request an ID, echoed in the X-Request-ID header.

    An upstream X-Request-ID is kept so one ID follows the call across services.
    """

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get("X-Request-ID", "")
        request_id = inbound if _VALID_REQUEST_ID.match(inbound) else str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def request_id_of(request: Request) -> str | None:
    """The request's ID, if RequestIDMiddleware ran."""
    return getattr(request.state, "request_id", None)
