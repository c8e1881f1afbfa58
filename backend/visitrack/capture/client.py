import logging
from typing import Optional, Union

import httpx

from ..config import settings
from .location import VisitorDraft

logger = logging.getLogger(__name__)


class VisitorApiError(Exception):
    """Request to the visitor API failed"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class VisitorApiClient:
    """
    Minimal client for the visitor endpoints, authenticated with the API key.

    Args:
        base_url: Server root, e.g. "https://admin.example.com"
        api_key: Value sent as ``Authorization: ApiKey <api_key>``
        http_client: Optional preconfigured client (its base_url is ignored)
    """

    def __init__(self, base_url: str, api_key: str,
                 http_client: Optional[httpx.Client] = None,
                 timeout: float = settings.LOOKUP_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"ApiKey {api_key}"}
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def submit(self, draft: Union[VisitorDraft, dict]) -> dict:
        """Create the visitor, or record a repeat visit for its IP"""
        return self._request("POST", "/api/visitors", json=self._payload(draft))

    def update(self, visitor_id: int, draft: Union[VisitorDraft, dict]) -> dict:
        return self._request("PUT", f"/api/visitors/{visitor_id}", json=self._payload(draft))

    def get_by_ip(self, ip_address: str) -> dict:
        return self._request("GET", f"/api/visitors/ip/{ip_address}")

    def delete(self, visitor_id: int) -> dict:
        return self._request("DELETE", f"/api/visitors/{visitor_id}")

    @staticmethod
    def _payload(draft: Union[VisitorDraft, dict]) -> dict:
        return draft.to_payload() if isinstance(draft, VisitorDraft) else dict(draft)

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        try:
            response = self._client.request(method, self.base_url + path, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise VisitorApiError(f"Request failed: {exc}") from exc

        if response.is_error:
            raise VisitorApiError(_error_message(response), status_code=response.status_code)

        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return response.text or f"HTTP {response.status_code}"
