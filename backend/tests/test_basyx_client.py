"""
Tests for the BaSyx AAS Environment client.
"""

import json

import httpx
import pytest

from formstudio.clients.basyx_client import (
    BaSyxClient,
    BaSyxError,
    base64url_decode,
    base64url_encode,
)

SUBMODEL = {
    "modelType": "Submodel",
    "id": "urn:example:sm:1",
    "idShort": "Nameplate",
    "semanticId": {
        "type": "ExternalReference",
        "keys": [{"type": "GlobalReference", "value": "https://example.com/sm/Nameplate"}],
    },
}


class EnvironmentStub:
    """In-memory submodel repository answering like a BaSyx environment."""

    def __init__(self, paginated=True):
        self.store: dict[str, dict] = {}
        self.paginated = paginated
        self.calls: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        parts = request.url.path.strip("/").split("/")
        if parts == ["submodels"]:
            if request.method == "GET":
                result = list(self.store.values())
                return httpx.Response(200, json={"result": result} if self.paginated else result)
            if request.method == "POST":
                body = json.loads(request.content)
                self.store[body["id"]] = body
                return httpx.Response(201, json=body)
        if len(parts) == 2 and parts[0] == "submodels":
            submodel_id = base64url_decode(parts[1])
            if request.method == "PUT":
                self.store[submodel_id] = json.loads(request.content)
                return httpx.Response(204)
            if submodel_id not in self.store:
                return httpx.Response(404, json={"message": "not found"})
            if request.method == "GET":
                return httpx.Response(200, json=self.store[submodel_id])
            if request.method == "DELETE":
                del self.store[submodel_id]
                return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def environment():
    return EnvironmentStub()


@pytest.fixture
def client(environment):
    return BaSyxClient("http://basyx.test/", transport=httpx.MockTransport(environment))


class TestBase64Url:
    """Tests for identifier encoding."""

    def test_unpadded_and_url_safe(self):
        """Test that encoded ids carry no padding or path characters."""
        encoded = base64url_encode("https://example.com/ids/sm/1?x=y")
        assert "=" not in encoded
        assert "/" not in encoded and "+" not in encoded
        assert base64url_decode(encoded) == "https://example.com/ids/sm/1?x=y"


class TestBaSyxClient:
    """Tests for BaSyxClient."""

    @pytest.mark.asyncio
    async def test_list_unwraps_result(self, client, environment):
        """Test paginated and plain list responses."""
        environment.store[SUBMODEL["id"]] = SUBMODEL
        assert await client.list() == [SUBMODEL]
        environment.paginated = False
        assert await client.list() == [SUBMODEL]
        await client.close()

    @pytest.mark.asyncio
    async def test_get_encodes_id(self, client, environment):
        """Test that identifiers are base64url encoded in the path."""
        environment.store[SUBMODEL["id"]] = SUBMODEL
        assert await client.get(SUBMODEL["id"]) == SUBMODEL
        assert environment.calls[-1] == ("GET", f"/submodels/{base64url_encode(SUBMODEL['id'])}")

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        """Test that a missing submodel raises with its status code."""
        with pytest.raises(BaSyxError) as exc_info:
            await client.get("urn:missing")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_save_creates_then_updates(self, client, environment):
        """Test upsert through save."""
        created = await client.save(SUBMODEL)
        assert created == SUBMODEL
        assert ("POST", "/submodels") in environment.calls

        changed = {**SUBMODEL, "idShort": "Renamed"}
        updated = await client.save(changed)
        assert updated["idShort"] == "Renamed"
        assert environment.calls[-2][0] == "PUT"
        assert environment.store[SUBMODEL["id"]]["idShort"] == "Renamed"

    @pytest.mark.asyncio
    async def test_save_propagates_other_errors(self):
        """Test that non-404 errors on read abort the save."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        async with BaSyxClient("http://basyx.test", transport=transport) as client:
            with pytest.raises(BaSyxError) as exc_info:
                await client.save(SUBMODEL)
        assert exc_info.value.status_code == 500
        assert "boom" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_get_by_semantic_id(self, client, environment):
        """Test lookup by the submodel's semantic id."""
        environment.store[SUBMODEL["id"]] = SUBMODEL
        assert await client.get_by_semantic_id("https://example.com/sm/Nameplate") == SUBMODEL
        assert await client.get_by_semantic_id("urn:other") is None

    @pytest.mark.asyncio
    async def test_delete(self, client, environment):
        """Test deleting a submodel."""
        environment.store[SUBMODEL["id"]] = SUBMODEL
        await client.delete(SUBMODEL["id"])
        assert environment.store == {}

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Test the health check against a reachable environment."""
        assert await client.check_health() is True

    @pytest.mark.asyncio
    async def test_unreachable(self):
        """Test that transport failures map to 503 and an unhealthy check."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = BaSyxClient("http://basyx.test", transport=httpx.MockTransport(handler))
        with pytest.raises(BaSyxError) as exc_info:
            await client.list()
        assert exc_info.value.status_code == 503
        assert await client.check_health() is False
        await client.close()
