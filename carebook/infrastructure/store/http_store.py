import logging
from typing import Any, Dict, List, Optional

import httpx

from ...application.ports.document_store import DocumentStore
from ...exceptions import NotFoundError, TransportError

logger = logging.getLogger(__name__)


def _query_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
    params = {}
    for key, value in (filters or {}).items():
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        else:
            params[key] = str(value)
    return params


class HttpDocumentStore(DocumentStore):
    """Document store backed by a json-server style REST API.

    ``GET /{collection}?field=value`` lists, ``POST`` creates, ``PATCH``
    updates partially, ``PUT`` replaces and ``DELETE`` removes. No retries:
    failures surface to the caller as ``TransportError``.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout,
                                              headers={"Content-Type": "application/json"})

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Document store request {method} {path} failed: {e}")
            raise TransportError(f"Document store unreachable: {e}")
        if response.status_code == 404:
            raise NotFoundError(f"{path} not found")
        if response.status_code >= 400:
            logger.error(f"Document store {method} {path} returned {response.status_code}: {response.text}")
            raise TransportError(f"Document store returned {response.status_code}", upstream_status=response.status_code)
        return response

    def _json(self, response: httpx.Response):
        try:
            return response.json()
        except ValueError:
            raise TransportError("Document store returned invalid JSON", upstream_status=response.status_code)

    def list(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        data = self._json(self._request("GET", f"/{collection}", params=_query_params(filters)))
        if not isinstance(data, list):
            raise TransportError(f"Expected a list from /{collection}")
        return data

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        return self._json(self._request("GET", f"/{collection}/{doc_id}"))

    def create(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        return self._json(self._request("POST", f"/{collection}", json=document))

    def patch(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._json(self._request("PATCH", f"/{collection}/{doc_id}", json=changes))

    def replace(self, collection: str, doc_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        return self._json(self._request("PUT", f"/{collection}/{doc_id}", json=document))

    def delete(self, collection: str, doc_id: str) -> None:
        self._request("DELETE", f"/{collection}/{doc_id}")
