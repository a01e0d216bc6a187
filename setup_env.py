#!/usr/bin/env python3
"""
Environment Setup and Validation Script

Checks that the proxy secrets and the client configuration are in place
before starting the proxy or the layer CLI.

Usage:
    python setup_env.py           # Validate environment and ping the proxy
    python setup_env.py --check   # Check and exit (for CI/CD), no network
"""

import os
import sys
from pathlib import Path
from urllib.parse import urlparse

import requests
from dotenv import dotenv_values, load_dotenv

from core.config import (
    DEFAULT_PROXY_PORT,
    DEFAULT_TARGET_API,
    REQUIRED_CLIENT_KEYS,
    REQUIRED_PROXY_KEYS,
)

# ANSI color codes for terminal output
GREEN = '\033[92m'
RED = '\033[91m'
YELLOW = '\033[93m'
BLUE = '\033[94m'
RESET = '\033[0m'

DESCRIPTIONS = {
    "API_KEY": "SkAI API key (proxy only)",
    "CLIENT_ID": "SkAI client id (proxy only)",
    "MAPBOX_TOKEN": "Mapbox access token",
    "API_BASE_URL": "Base URL the client fetches from (usually the proxy)",
}


def print_header(text: str):
    print(f"\n{BLUE}{'=' * 70}{RESET}")
    print(f"{BLUE}{text.center(70)}{RESET}")
    print(f"{BLUE}{'=' * 70}{RESET}\n")


def print_success(text: str):
    print(f"{GREEN}✓{RESET} {text}")


def print_error(text: str):
    print(f"{RED}✗{RESET} {text}")


def print_warning(text: str):
    print(f"{YELLOW}⚠{RESET} {text}")


def check_env_file(env_file: Path) -> bool:
    """Check if the proxy .env file exists."""
    if not env_file.exists():
        print_error(f"{env_file} not found!")
        print("\n  To create it:")
        print("  1. Copy the template: cp env.example .env")
        print("  2. Edit .env and fill in API_KEY and CLIENT_ID")
        return False

    print_success(f"{env_file} found")
    if not Path("env.example").exists():
        print_warning("env.example template not found (optional)")
    return True


def _masked(value: str) -> str:
    return value[:8] + "..." if len(value) > 8 else "***"


def validate_vars(values: dict, keys) -> list:
    """Print each key's state; return the missing ones."""
    missing = []
    for name in keys:
        value = (values.get(name) or "").strip()
        if not value:
            print_error(f"{name}: NOT SET ({DESCRIPTIONS[name]})")
            missing.append(name)
        else:
            print_success(f"{name}: {_masked(value)}")
    return missing


def validate_optional_vars():
    optional_vars = {
        "PROXY_TARGET_API": (DEFAULT_TARGET_API, "Upstream SkAI API"),
        "PROXY_PORT": (str(DEFAULT_PROXY_PORT), "Proxy listen port"),
        "API_TIMEOUT_SECONDS": ("none", "Client request timeout"),
    }
    for var_name, (default, description) in optional_vars.items():
        value = os.getenv(var_name)
        if value:
            print_success(f"{var_name}: {value} ({description})")
        else:
            print_warning(f"{var_name}: {default} (using default - {description})")


def validate_base_url() -> bool:
    url = os.getenv("API_BASE_URL")
    if not url:
        return False
    result = urlparse(url)
    if result.scheme not in ("http", "https") or not result.netloc:
        print_error(f"API_BASE_URL: expected http(s)://host[:port], got {url!r}")
        return False
    print_success(f"API_BASE_URL format valid (host: {result.netloc})")
    return True


def ping_proxy() -> bool:
    """GET /health on API_BASE_URL; a missing proxy is a warning, not a failure."""
    url = f"{os.getenv('API_BASE_URL', '').rstrip('/')}/health"
    print(f"\n  Pinging {url} ...")
    try:
        response = requests.get(url, timeout=5)
        response.raise_for_status()
        body = response.json()
    except requests.RequestException as e:
        print_warning(f"Proxy not reachable: {e}")
        print("  Start it with: python -m api.api")
        return True
    except ValueError:
        print_error("Proxy answered with a non-JSON body")
        return False

    print_success(f"Proxy is up ({body.get('service')} -> {body.get('target')})")
    return True


def main():
    print_header("Environment Setup Validation")
    check_only = "--check" in sys.argv
    all_valid = True

    env_file = Path(os.getenv("PROXY_ENV_FILE", ".env"))

    print(f"\n{BLUE}[1/5] Checking .env file...{RESET}")
    if not check_env_file(env_file):
        all_valid = False
        if check_only:
            sys.exit(1)

    print(f"\n{BLUE}[2/5] Validating proxy secrets...{RESET}")
    proxy_values = dotenv_values(env_file) if env_file.exists() else {}
    missing = validate_vars(proxy_values, REQUIRED_PROXY_KEYS)

    print(f"\n{BLUE}[3/5] Validating client configuration...{RESET}")
    load_dotenv()
    missing += validate_vars(dict(os.environ), REQUIRED_CLIENT_KEYS)
    if missing:
        all_valid = False
        print(f"\n  Missing {len(missing)} required variable(s):")
        for var in missing:
            print(f"    - {var}")

    print(f"\n{BLUE}[4/5] Checking optional environment variables...{RESET}")
    validate_optional_vars()

    print(f"\n{BLUE}[5/5] Validating API base URL...{RESET}")
    if not validate_base_url():
        all_valid = False
    elif not check_only and not ping_proxy():
        all_valid = False

    print_header("Validation Results")
    if all_valid:
        print_success("All checks passed! ✓")
        print("\nStart the proxy with:")
        print("  python -m api.api")
        return 0

    print_error("Some checks failed! ✗")
    print(f"\n{RED}Please fix the issues above before starting the proxy.{RESET}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
