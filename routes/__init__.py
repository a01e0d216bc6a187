"""
Routes package for the SkAI API Proxy.

- proxy: health check and the /db-api/* pass-through
"""

# Note: Routers are imported directly in api.py and configured there

__all__ = [
    'proxy',
]
