"""
Middleware for logging requests and responses.
"""
import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log every request with its status and latency."""

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next):
        if not self.log_requests:
            return await call_next(request)

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            response_time_ms = (time.time() - start_time) * 1000
            logger.exception(
                f"{request.method} {request.url.path} from {self._get_client_ip(request)} "
                f"failed after {response_time_ms:.1f}ms"
            )
            raise

        response_time_ms = (time.time() - start_time) * 1000
        wallet_address = request.query_params.get("wallet_address")
        message = (
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {response_time_ms:.1f}ms ip={self._get_client_ip(request)}"
        )
        if wallet_address:
            message += f" wallet={wallet_address}"

        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP address from request."""
        # Check X-Forwarded-For header first (for proxies/load balancers)
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            # Take the first IP in case of multiple IPs
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip.strip()

        if request.client:
            return request.client.host

        return "unknown"
