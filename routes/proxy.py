"""
Proxy routes - health check and credential-injecting pass-through to the
SkAI DB API. Only /db-api/* is forwarded.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import requests
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from core.config import PROXY_PATH_PREFIX, PROXY_SERVICE_NAME, PROXY_USER_AGENT, ProxySettings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Proxy"])

MIRRORED_HEADERS = ("x-period-start", "x-period-end")
STREAM_CHUNK_SIZE = 8192
# Every method is accepted; OPTIONS never gets here (answered by the CORS middleware)
HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]

# These will be set by api.py
_settings: Optional[ProxySettings] = None
_session: Optional[requests.Session] = None


def configure(settings: ProxySettings, session: Optional[requests.Session] = None):
    """Configure the router with secrets and the upstream HTTP session from api.py"""
    global _settings, _session
    _settings = settings
    _session = session or requests.Session()


def _upstream_headers() -> dict:
    return {
        "X-API-Key": _settings.api_key,
        "X-Client-ID": _settings.client_id,
        "Accept": "application/json",
        "User-Agent": PROXY_USER_AGENT,
    }


def _request_path(request: Request) -> str:
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1").split("?", 1)[0]
    return request.url.path


@router.api_route("/", methods=HTTP_METHODS)
@router.api_route("/health", methods=HTTP_METHODS)
def health():
    return {
        "status": "ok",
        "service": PROXY_SERVICE_NAME,
        "target": _settings.target_api,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


@router.api_route("/{path:path}", methods=HTTP_METHODS)
async def proxy_request(path: str, request: Request):
    """
    Forward /db-api/* to the upstream API with the secret headers attached.

    Status and body are passed through untouched; only the period headers are
    mirrored back. Connection failures become a 502 with {error, message}.
    """
    request_path = _request_path(request)
    if not request_path.startswith(PROXY_PATH_PREFIX):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not found",
                "message": f"This proxy only handles {PROXY_PATH_PREFIX}* paths",
                "hint": f"Try: http://localhost:{_settings.port}{PROXY_PATH_PREFIX}v1/spoofing/agg/sample",
            },
        )

    target_url = f"{_settings.target_api}{request_path}"
    if request.url.query:
        target_url = f"{target_url}?{request.url.query}"

    body = None
    if request.method not in ("GET", "HEAD"):
        body = await request.body()

    logger.info(f"📡 {request.method} {target_url}")
    try:
        upstream = await run_in_threadpool(
            _session.request,
            request.method,
            target_url,
            headers=_upstream_headers(),
            data=body,
            stream=True,
        )
    except requests.RequestException as e:
        logger.error(f"API request error: {e}", exc_info=True)
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to connect to SkAI API", "message": str(e)},
        )

    logger.info(f"✅ {upstream.status_code} {upstream.reason}")

    headers = {
        name: upstream.headers[name]
        for name in MIRRORED_HEADERS
        if upstream.headers.get(name)
    }
    return StreamingResponse(
        upstream.iter_content(chunk_size=STREAM_CHUNK_SIZE),
        status_code=upstream.status_code,
        headers=headers,
        media_type="application/json",
        background=BackgroundTask(upstream.close),
    )
