"""Request context middleware: request id, learner id, timing.

FastAPI serves concurrent requests on one thread, so per-request state
lives in ContextVars rather than thread-locals.  Each request's task sees
its own values; a logging filter copies them onto every LogRecord emitted
while the request is in flight, whichever module logs.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

LEARNER_HEADER = "x-learner-id"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
learner_id_var: ContextVar[str] = ContextVar("learner_id", default="-")


class RequestContextFilter(logging.Filter):
    """Stamps request_id and learner_id onto records.

    Values passed explicitly via ``extra=`` win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        if not hasattr(record, "learner_id"):
            record.learner_id = learner_id_var.get()  # type: ignore[attr-defined]
        return True


def install_log_filter() -> None:
    """Attach the context filter to every root handler.

    Handler filters see records from all loggers; a filter on the root
    logger itself only sees records logged on the root.
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestContextFilter) for f in handler.filters):
            handler.addFilter(RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Per request:

    1. take X-Request-ID from the client or generate one
    2. take the learner id supplied by the gateway, if any
    3. time the call and log a summary line
    4. echo X-Request-ID on the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_token = request_id_var.set(req_id)
        learner_token = learner_id_var.set(request.headers.get(LEARNER_HEADER) or "-")

        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            learner_id_var.reset(learner_token)
            request_id_var.reset(request_token)
