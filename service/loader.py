"""Dispatch a settings value to the right layer loader."""
from core.models import LoadResult
from core.settings import QuerySettings
from service.api_client import ApiClient
from service.jamming_layer import JammingLayer
from service.spoofing_layer import SpoofingLayer


def load_layer(settings: QuerySettings, api_client: ApiClient) -> LoadResult:
    """Fetch and shape data for `settings.data_source`. Raises on any load error."""
    if settings.is_spoofing:
        return SpoofingLayer(api_client).load(settings)
    return JammingLayer(api_client).load(settings)
