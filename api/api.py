"""
SkAI API Proxy

Small FastAPI application that sits between the browser map client and the
SkAI DB API so the API credentials never reach the browser.

Routes included:
- Health check (/ and /health)
- Pass-through for /db-api/* with X-API-Key / X-Client-ID injected
- CORS preflight for every path

Run:
    python -m api.api            # reads ./.env (or $PROXY_ENV_FILE)
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import requests
import uvicorn
from fastapi import FastAPI

# Add parent directory to path
root_path = str(Path(__file__).resolve().parent.parent)
if root_path not in sys.path:
    sys.path.insert(0, root_path)

from api.middleware.cors import ProxyCorsMiddleware
from core.config import ProxySettings, load_proxy_settings
from core.errors import StartupConfigError
from routes.proxy import configure as configure_proxy, router as proxy_router

logger = logging.getLogger(__name__)


# ============================================================================
# APP INITIALIZATION
# ============================================================================

def create_app(settings: ProxySettings, session: Optional[requests.Session] = None) -> FastAPI:
    """Build the proxy app; secrets must already be loaded."""
    app = FastAPI(
        title="SkAI API Proxy",
        description="Credential-injecting proxy for the SkAI GNSS interference API",
    )
    app.middleware("http")(ProxyCorsMiddleware())

    configure_proxy(settings, session)
    app.include_router(proxy_router)
    return app


# ============================================================================
# ENTRY POINT
# ============================================================================

def main(env_path: Optional[Path] = None):
    logging.basicConfig(level=logging.INFO)

    try:
        settings = load_proxy_settings(env_path)
    except StartupConfigError as e:
        # never serve without credentials
        logger.error(f"❌ {e}")
        sys.exit(1)

    logger.info("🚀 SkAI API Proxy Server")
    logger.info(f"📍 Local:     http://localhost:{settings.port}")
    logger.info(f"🎯 Target:    {settings.target_api}")
    logger.info(f"🔑 API Key:   {settings.masked_api_key}")
    logger.info(f"👤 Client ID: {settings.client_id}")

    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
