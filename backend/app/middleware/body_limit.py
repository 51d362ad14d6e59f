"""
Project Gallery Backend — Request Body Size Limit
===================================================

What:  Rejects non-multipart requests whose declared Content-Length is above
       MAX_JSON_BODY_SIZE with HTTP 413.
How:   Checks the header only; the body is never read here. Multipart
       uploads are left to the UploadReceiver, which enforces its own
       per-file and per-request limits.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.exceptions import PayloadTooLargeError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        content_type = request.headers.get("content-type", "")
        declared = request.headers.get("content-length")

        if declared and declared.isdigit() and not content_type.startswith("multipart/"):
            if int(declared) > self.max_bytes:
                exc = PayloadTooLargeError(limit=self.max_bytes)
                rid = request_id_var.get("")
                logger.warning(
                    "[%s] Rejected %s %s: body of %s bytes over %d",
                    rid,
                    request.method,
                    request.url.path,
                    declared,
                    self.max_bytes,
                )
                return JSONResponse(
                    status_code=413,
                    content={
                        "error": "payload_too_large",
                        "message": exc.message,
                        "details": exc.context,
                        "request_id": rid,
                    },
                )

        return await call_next(request)
