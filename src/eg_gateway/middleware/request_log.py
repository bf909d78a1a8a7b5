"""Per-request correlation id and access log for the game API.

A client may send its own `X-Request-ID` (the classroom UI does, so a bid and
the broadcast it triggers can be traced together); otherwise one is minted.
The id lands in `request.state.request_id` for the ApiResponse envelope and is
echoed back in the response header.

Requests against a session or round carry that reference in the log line:
    INFO POST /api/v1/game/bids 201 12ms req_1a2b3c4d5e6f
    INFO POST /api/v1/sessions/ABC123/start 200 8ms req_... session=ABC123
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("eg.request")

REQUEST_ID_HEADER = "X-Request-ID"

_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")
_SUBJECT_RE = re.compile(r"/(sessions|rounds)/([^/]+)")
_SUBJECT_LABEL = {"sessions": "session", "rounds": "round"}


def resolve_request_id(header_value: str | None) -> str:
    """Keep a well-formed client id, mint `req_<12 hex>` for anything else."""
    if header_value and _CLIENT_ID_RE.match(header_value):
        return header_value
    return f"req_{uuid.uuid4().hex[:12]}"


def request_subject(path: str) -> str:
    match = _SUBJECT_RE.search(path)
    if match is None:
        return ""
    return f" {_SUBJECT_LABEL[match.group(1)]}={match.group(2)}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s %d %.0fms %s%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
            request_subject(request.url.path),
        )
        return response
