"""Request correlation and access logging."""

import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from shared.logging import clear_context, get_logger, set_correlation_id

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Longer caller-supplied ids are replaced rather than echoed
MAX_CORRELATION_ID_LENGTH = 128


def _incoming_id(request: Request) -> str | None:
    value = (request.headers.get(CORRELATION_ID_HEADER) or "").strip()
    if not value or len(value) > MAX_CORRELATION_ID_LENGTH:
        return None
    return value


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id.

    The caller's ``X-Correlation-ID`` is reused when present, otherwise a
    uuid4 is minted. The id is stored on ``request.state`` for the error
    handlers, bound into the log context and echoed on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = _incoming_id(request) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        clear_context()
        set_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            set_correlation_id(None)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            correlation_id=correlation_id,
        )
        clear_context()
        return response
