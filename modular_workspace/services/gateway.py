"""
Remote Data Gateway client.

Thin async HTTP client over the per-user document store:

    GET    <base>/data/{module_id}   -> JSON document, 404 when never saved
    POST   <base>/data/{module_id}   body {"data": <document>}
    DELETE <base>/data               -> {"deleted_records": n, "message": ...}

Authentication is the per-session nonce injected by the hosting page,
sent as the ``X-WP-Nonce`` header. The client never manages credentials.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from modular_workspace.lib.exceptions import (
    GatewayResponseError,
    GatewayUnavailableError,
    SerializationError,
)
from modular_workspace.lib.json_codec import normalize

logger = logging.getLogger(__name__)

NONCE_HEADER = "X-WP-Nonce"


class RemoteDataGateway:
    """Async client for the remote document store.

    Args:
        base_url: REST base URL injected by the host (e.g. ``.../wp-json/fm/v1/``)
        nonce: Per-session nonce for the ``X-WP-Nonce`` header
        timeout: Request timeout in seconds
        client: Pre-built ``httpx.AsyncClient`` (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        nonce: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._nonce = nonce
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _url(self, module_id: str | None = None) -> str:
        if module_id is None:
            return f"{self._base_url}/data"
        return f"{self._base_url}/data/{quote(module_id, safe='')}"

    def _headers(self) -> dict[str, str]:
        return {NONCE_HEADER: self._nonce} if self._nonce else {}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            raise GatewayUnavailableError(f"{method} {url} failed: {e}") from e

    async def fetch(self, module_id: str) -> Any | None:
        """Fetch a module's document.

        Returns:
            The stored document, or None when the server has none (404)

        Raises:
            GatewayUnavailableError: If the server cannot be reached
            GatewayResponseError: On any other non-2xx status or a non-JSON body
        """
        response = await self._request("GET", self._url(module_id))
        if response.status_code == 404:
            logger.debug("No remote document for %s", module_id)
            return None
        if not response.is_success:
            raise GatewayResponseError(response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise GatewayResponseError(
                response.status_code, f"Invalid JSON from gateway for {module_id}"
            ) from e

    async def save(self, module_id: str, document: Any) -> None:
        """Replace a module's whole document on the server.

        Raises:
            GatewayUnavailableError: If the server cannot be reached
            GatewayResponseError: On a non-2xx status
            SerializationError: If the document is not JSON-serializable
        """
        try:
            body = {"data": normalize(document)}
        except SerializationError:
            logger.error("Refusing to push non-serializable document for %s", module_id)
            raise
        response = await self._request("POST", self._url(module_id), json=body)
        if not response.is_success:
            raise GatewayResponseError(response.status_code)

    async def delete_all(self) -> int:
        """Delete every document of the current principal.

        Returns:
            Number of records the server reports as deleted

        Raises:
            GatewayUnavailableError: If the server cannot be reached
            GatewayResponseError: On a non-2xx status
        """
        response = await self._request("DELETE", self._url())
        if not response.is_success:
            raise GatewayResponseError(response.status_code)
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        deleted = int(payload.get("deleted_records", 0))
        logger.info("Deleted %d remote records: %s", deleted, payload.get("message", ""))
        return deleted

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()
