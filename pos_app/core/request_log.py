import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger(__name__)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    One log line per request: method, path, register, status and duration.
    """

    async def dispatch(self, request, call_next):

        # Health probes stay quiet
        if request.url.path == "/health":
            return await call_next(request)

        started = time.perf_counter()
        register_id = request.headers.get("X-Register-Id") or "-"

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error | %s %s | register=%s",
                request.method,
                request.url.path,
                register_id,
            )
            raise

        logger.info(
            "%s %s | register=%s | %s | %.1fms",
            request.method,
            request.url.path,
            register_id,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )

        return response
