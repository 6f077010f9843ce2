# backend/portal/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

if TYPE_CHECKING:
    from ..auth import Principal

REQUEST_ID_HEADER = "X-Request-ID"

# ids from callers end up in every log line; anything else gets replaced
_CLIENT_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def accept_request_id(raw: Optional[str]) -> str:
    rid = (raw or "").strip()
    if rid and _CLIENT_ID.match(rid):
        return rid
    return uuid.uuid4().hex


def tag_principal(request: Request, principal: "Principal") -> "Principal":
    """
    Record the resolved caller on the request so the access log reports who
    the portal authenticated, not what the headers claimed.
    """
    request.state.principal = principal
    return principal


def tagged_principal(request: Request) -> Optional["Principal"]:
    return getattr(request.state, "principal", None)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Correlation id per request: taken from X-Request-ID when it looks sane,
    generated otherwise, echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER))

        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
            resp.headers[REQUEST_ID_HEADER] = rid
            return resp
        finally:
            request_id_ctx.reset(token)
