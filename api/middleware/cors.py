"""
CORS Middleware
Every response carries the same CORS headers; preflight is answered directly.
"""
import logging

from fastapi import Request, Response

logger = logging.getLogger(__name__)


class ProxyCorsMiddleware:
    """
    Wildcard-origin CORS for the proxy.

    Unlike Starlette's CORSMiddleware this answers every OPTIONS request with
    204 (no Origin / Access-Control-Request-Method needed) and also decorates
    404/502 responses produced by the proxy itself.
    """

    def __init__(self, allow_methods=("GET", "POST", "OPTIONS"),
                 allow_headers=("Content-Type",), max_age: int = 86400):
        self.headers = {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": ", ".join(allow_methods),
            "Access-Control-Allow-Headers": ", ".join(allow_headers),
        }
        self.max_age = max_age

    async def __call__(self, request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}{'?' + request.url.query if request.url.query else ''}")

        if request.method == "OPTIONS":
            return Response(
                status_code=204,
                headers={**self.headers, "Access-Control-Max-Age": str(self.max_age)},
            )

        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response
