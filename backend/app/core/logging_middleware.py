"""Request logging middleware."""

import logging
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("tally.requests")

_CAMPAIGN_PATH = re.compile(r"/campaigns/(?P<campaign_id>[^/]+)")

# Requests slower than this are logged at WARNING (a cold snapshot fans out
# one gateway read per project)
SLOW_REQUEST_MS = 2000.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status, campaign and duration.

    Server errors log at ERROR, client errors and slow requests at WARNING.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        status = response.status_code
        path = request.url.path
        match = _CAMPAIGN_PATH.search(path)
        campaign = f" campaign={match.group('campaign_id')}" if match else ""

        if status >= 500:
            log = logger.error
        elif status >= 400 or duration_ms > SLOW_REQUEST_MS:
            log = logger.warning
        else:
            log = logger.info
        log("%s %s → %d (%.0fms)%s", request.method, path, status, duration_ms, campaign)
        return response
