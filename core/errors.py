"""
Error taxonomy for the interference layers.

- RequestError: upstream or proxy answered with a non-2xx status
- NetworkError: transport failure before any HTTP status was received
- StartupConfigError: required secrets/config missing at process start (fatal)
- GeometryOperationError: a severity union failed for one bucket (recovered locally)
"""
from typing import Optional


class InterferenceLayerError(Exception):
    """Base class for all errors raised by this package."""


class RequestError(InterferenceLayerError):
    """Non-2xx HTTP response."""

    def __init__(self, status: int, status_text: str, url: Optional[str] = None):
        self.status = status
        self.status_text = status_text
        self.url = url
        super().__init__(f"API request failed: {status} {status_text}")


class NetworkError(InterferenceLayerError):
    """Could not reach the API at all (DNS, refused connection, reset...)."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class StartupConfigError(InterferenceLayerError):
    pass


class GeometryOperationError(InterferenceLayerError):
    def __init__(self, bucket: str, message: str):
        self.bucket = bucket
        super().__init__(f"Union failed for bucket '{bucket}': {message}")


# Both are shown to the user as the same generic "failed to load" notice
LOAD_ERRORS = (RequestError, NetworkError)
