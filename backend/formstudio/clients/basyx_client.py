"""
BaSyx AAS Environment client for submodel persistence.

Talks to the submodel repository endpoints of a BaSyx AAS Environment.
Identifiers are base64url encoded in request paths.
"""

import base64
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class BaSyxError(Exception):
    """Raised for failed requests against the AAS Environment."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def base64url_encode(value: str) -> str:
    """Encode an identifier for use in a request path (unpadded)."""
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def base64url_decode(value: str) -> str:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding).decode("utf-8")


class BaSyxClient:
    """
    Async HTTP client for the BaSyx AAS Environment.

    Features:
    - Submodel create, read, update, delete and list
    - Upsert decided by a 404 on read
    - Health check against the submodel endpoint
    """

    def __init__(
        self,
        base_url: str = "http://localhost:4001",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"BaSyx request {method} {path} failed: {e}")
            raise BaSyxError(503, f"BaSyx environment unreachable: {e}") from e

        if response.is_error:
            raise BaSyxError(
                response.status_code,
                f"BaSyx API error: {response.reason_phrase} - {response.text}",
            )
        if not response.content.strip():
            return None
        return response.json()

    async def list(self) -> list[dict[str, Any]]:
        """
        List all submodels.

        Returns:
            Submodel documents; paginated responses are unwrapped
        """
        data = await self._request("GET", "/submodels")
        if not data:
            return []
        if isinstance(data, dict):
            return data.get("result") or []
        return data

    async def get(self, submodel_id: str) -> dict[str, Any]:
        """
        Get a submodel by identifier.

        Raises:
            BaSyxError: With status 404 if the submodel does not exist
        """
        data = await self._request("GET", f"/submodels/{base64url_encode(submodel_id)}")
        if data is None:
            raise BaSyxError(502, "Empty response when fetching submodel")
        return data

    async def get_by_semantic_id(self, semantic_id: str) -> dict[str, Any] | None:
        for submodel in await self.list():
            keys = (submodel.get("semanticId") or {}).get("keys") or []
            if keys and keys[0].get("value") == semantic_id:
                return submodel
        return None

    async def create(self, submodel: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", "/submodels", json=submodel)
        if data is not None:
            return data
        return await self.get(submodel["id"])

    async def update(self, submodel: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "PUT", f"/submodels/{base64url_encode(submodel['id'])}", json=submodel
        )
        if data is not None:
            return data
        return await self.get(submodel["id"])

    async def delete(self, submodel_id: str) -> None:
        await self._request("DELETE", f"/submodels/{base64url_encode(submodel_id)}")

    async def save(self, submodel: dict[str, Any]) -> dict[str, Any]:
        """Create or update a submodel, depending on whether it exists."""
        try:
            await self.get(submodel["id"])
        except BaSyxError as e:
            if e.status_code != 404:
                raise
            logger.info(f"Creating submodel {submodel['id']}")
            return await self.create(submodel)
        logger.info(f"Updating submodel {submodel['id']}")
        return await self.update(submodel)

    async def check_health(self) -> bool:
        """True if the submodel endpoint answers successfully."""
        try:
            await self._request("GET", "/submodels", params={"limit": 1})
        except BaSyxError:
            return False
        return True

    async def __aenter__(self) -> "BaSyxClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
