"""
Middleware for FastAPI: session id, request context, request logging.
"""
import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.config import Config
from storefront.context import RequestContext

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
AUTH_COOKIES = (Config.COOKIE_TOKEN, Config.COOKIE_USERNAME)


def clear_auth_cookies(response: Response) -> None:
    # token and username are always cleared together
    for name in AUTH_COOKIES:
        response.delete_cookie(name, path="/")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Ensures a session id cookie and attaches a RequestContext to the request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        session_id = request.cookies.get(Config.COOKIE_SESSION_ID)
        new_session = not session_id
        if new_session:
            session_id = str(uuid.uuid4())

        ctx = RequestContext.from_cookies(
            request.cookies,
            session_id=session_id,
            request_id=request.headers.get(REQUEST_ID_HEADER),
        )
        request.state.ctx = ctx

        # Log request (no PII)
        ctx.log.info(
            f"Request: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "remote_addr": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            ctx.log.error(
                f"Error: {request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        ctx.log.info(
            f"Response: {request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": round(latency_ms, 2),
            }
        )

        # covers error responses too, not just rendered pages
        if ctx.clear_auth_cookies:
            clear_auth_cookies(response)
        if new_session:
            response.set_cookie(
                Config.COOKIE_SESSION_ID,
                session_id,
                max_age=Config.COOKIE_MAX_AGE_SECONDS,
                path="/",
            )
        response.headers[REQUEST_ID_HEADER] = ctx.request_id
        response.headers["X-Response-Time-Ms"] = f"{latency_ms:.2f}"
        return response


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the context built by the middleware"""
    ctx = getattr(request.state, "ctx", None)
    if ctx is None:
        ctx = RequestContext.from_cookies(request.cookies)
        request.state.ctx = ctx
    return ctx
