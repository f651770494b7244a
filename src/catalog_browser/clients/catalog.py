"""HTTP client for the remote paginated catalog."""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from requests.exceptions import RequestException

from catalog_browser.config.models import CatalogConfig, HTTPClientConfig
from catalog_browser.core.api_client import UnifiedAPIClient
from catalog_browser.core.errors import TransportError

Record = dict[str, Any]

__all__ = [
    "CatalogClient",
    "CatalogPortion",
    "ItemSource",
    "PortionSource",
    "Record",
    "item_id_from_url",
]


class CatalogPortion(BaseModel):
    """One server-side portion, in the shape the portion endpoint returns it."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    count: int = Field(ge=0)
    next: str | None = None
    previous: str | None = None
    results: list[Record] = Field(default_factory=list)


class PortionSource(Protocol):
    def get_portion(self, index: int, search_term: str) -> CatalogPortion: ...


class ItemSource(Protocol):
    def get_item(self, item_id: str) -> Record: ...


def item_id_from_url(url: str) -> str:
    """Return the trailing path segment of a record URL.

    >>> item_id_from_url("https://example.org/api/planets/7/")
    '7'
    """

    segment = url.rstrip("/").rsplit("/", 1)[-1]
    if not segment:
        raise ValueError(f"cannot extract an id from {url!r}")
    return segment


class CatalogClient:
    """Fetches portions and single records of one catalog resource."""

    def __init__(
        self,
        catalog: CatalogConfig,
        http: HTTPClientConfig,
        *,
        api_client: UnifiedAPIClient | None = None,
    ) -> None:
        self.catalog = catalog
        self._api = api_client or UnifiedAPIClient(http, base_url=catalog.base_url, name=catalog.resource)

    def get_portion(self, index: int, search_term: str) -> CatalogPortion:
        """Fetch portion ``index`` (1-based) of the results for ``search_term``."""

        payload = self._get_json(f"{self.catalog.resource}/", {"page": index, "search": search_term})
        try:
            return CatalogPortion.model_validate(payload)
        except ValidationError as exc:
            raise TransportError(f"unexpected portion payload: {exc}") from exc

    def get_item(self, item_id: str) -> Record:
        """Fetch one full record by id."""

        payload = self._get_json(f"{self.catalog.resource}/{item_id}/", None)
        if not isinstance(payload, dict):
            raise TransportError(f"expected JSON object for item {item_id!r}")
        return payload

    def close(self) -> None:
        self._api.close()

    def __enter__(self) -> CatalogClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_json(self, path: str, params: dict[str, Any] | None) -> Any:
        try:
            return self._api.request_json(path, params=params)
        except RequestException as exc:
            response = getattr(exc, "response", None)
            raise TransportError(
                str(exc),
                url=getattr(exc.request, "url", None) if exc.request is not None else None,
                status_code=response.status_code if response is not None else None,
            ) from exc
        except ValueError as exc:
            # requests' JSONDecodeError subclasses ValueError
            raise TransportError(f"response was not valid JSON: {exc}") from exc
