# agencycrm/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# ids land verbatim in JSON log lines and 500 bodies
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def incoming_request_id(request: Request) -> Optional[str]:
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid if _ACCEPTED_ID.match(rid) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id: the caller's X-Request-ID when it is a sane
    token, a fresh uuid4 hex otherwise. The id is echoed on the response, read
    by the log formatter through the contextvar and kept on request.state for
    the access log and the 500 handler, which run outside the contextvar.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = incoming_request_id(request) or uuid.uuid4().hex
        request.state.request_id = rid

        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        resp.headers[REQUEST_ID_HEADER] = rid
        return resp
