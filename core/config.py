"""
Configuration for the map client and the authenticating proxy.

Client values (map token, API base URL) are non-secret and come from the
environment / .env. Proxy secrets (API_KEY, CLIENT_ID) are read once from a
local .env file and never leave the proxy process.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import dotenv_values, load_dotenv

from core.errors import StartupConfigError

logger = logging.getLogger(__name__)

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_TARGET_API = "https://gpswise.aero"
DEFAULT_PROXY_PORT = 3333
PROXY_PATH_PREFIX = "/db-api/"
PROXY_SERVICE_NAME = "SkAI API Proxy"
PROXY_USER_AGENT = "SkAI-Proxy/1.0"

MAP_STYLE = "mapbox://styles/mapbox/dark-v11"
MAP_INITIAL_CENTER = [0, 30]  # [lng, lat]
MAP_INITIAL_ZOOM = 2
MAP_ATTRIBUTION = "GPS Jamming Data © SkAI Data Services"

DEBOUNCE_DELAY_SECONDS = 2.0
AUTO_REFRESH_INTERVAL_SECONDS = 15 * 60

REQUIRED_PROXY_KEYS = ("API_KEY", "CLIENT_ID")
REQUIRED_CLIENT_KEYS = ("MAPBOX_TOKEN", "API_BASE_URL")


@dataclass(frozen=True)
class ProxySettings:
    """Everything the proxy needs; secrets included."""
    api_key: str
    client_id: str
    target_api: str = DEFAULT_TARGET_API
    port: int = DEFAULT_PROXY_PORT

    @property
    def masked_api_key(self) -> str:
        return f"{self.api_key[:10]}..."


@dataclass(frozen=True)
class ClientConfig:
    """Non-secret client configuration injected at build time."""
    mapbox_token: str
    api_base_url: str
    map_style: str = MAP_STYLE
    initial_center: List[float] = field(default_factory=lambda: list(MAP_INITIAL_CENTER))
    initial_zoom: int = MAP_INITIAL_ZOOM
    request_timeout: Optional[float] = None


def _missing(values: dict, keys) -> List[str]:
    return [k for k in keys if not (values.get(k) or "").strip()]


def load_proxy_settings(env_path: Optional[Path] = None) -> ProxySettings:
    """
    Load proxy secrets from a .env file.

    Args:
        env_path: Path to the .env file. Defaults to $PROXY_ENV_FILE or ./.env

    Raises:
        StartupConfigError: if the file does not exist or a required key is empty
    """
    if env_path is None:
        env_path = Path(os.getenv("PROXY_ENV_FILE", ".env"))
    env_path = Path(env_path)

    if not env_path.exists():
        raise StartupConfigError(
            f".env file not found at {env_path}. Please create it with API_KEY and CLIENT_ID"
        )

    values = dotenv_values(env_path)
    missing = _missing(values, REQUIRED_PROXY_KEYS)
    if missing:
        raise StartupConfigError(
            f"Missing required environment variables: {', '.join(missing)} "
            f"(required: {' and '.join(REQUIRED_PROXY_KEYS)} in {env_path})"
        )

    target = values.get("PROXY_TARGET_API") or os.getenv("PROXY_TARGET_API") or DEFAULT_TARGET_API
    port = values.get("PROXY_PORT") or os.getenv("PROXY_PORT") or DEFAULT_PROXY_PORT
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise StartupConfigError(f"Invalid PROXY_PORT: {port!r}")

    return ProxySettings(
        api_key=values["API_KEY"].strip(),
        client_id=values["CLIENT_ID"].strip(),
        target_api=target.rstrip("/"),
        port=port,
    )


def load_client_config(require_map_token: bool = True) -> ClientConfig:
    """
    Load client configuration from environment variables (.env honoured).

    Headless callers (CLI) that never draw a map pass require_map_token=False.
    """
    load_dotenv()
    required = REQUIRED_CLIENT_KEYS if require_map_token else ("API_BASE_URL",)
    values = {k: os.getenv(k) for k in REQUIRED_CLIENT_KEYS}
    missing = _missing(values, required)
    if missing:
        raise StartupConfigError(f"{', '.join(missing)} is not set")

    timeout = os.getenv("API_TIMEOUT_SECONDS")
    return ClientConfig(
        mapbox_token=values["MAPBOX_TOKEN"] or "",
        api_base_url=values["API_BASE_URL"],
        request_timeout=float(timeout) if timeout else None,
    )
