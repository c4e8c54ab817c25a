"""
Unit tests for the document store clients.
HTTP behaviour is tested against a mocked requests session; path semantics
are tested on the in-memory client.
"""
from unittest.mock import Mock

import pytest
import requests

from azadi_cms.db.document_client import (
    DocumentStoreConfig,
    HttpDocumentClient,
    InMemoryDocumentClient,
    normalize_path,
)
from azadi_cms.db.errors import StoreTransportError
from azadi_cms.db.store_values import Absent, MapValue


def _response(status_code=200, body=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = body
    return response


@pytest.fixture
def http_client():
    session = Mock(spec=requests.Session)
    config = DocumentStoreConfig(base_url="https://store.example.com/", auth_token="secret", timeout_seconds=5)
    client = HttpDocumentClient(config, session=session)
    yield client, session
    client.close()


class TestNormalizePath:
    def test_strips_slashes(self):
        assert normalize_path("/leaders/L1/") == "leaders/L1"

    @pytest.mark.parametrize("path", ["", "/", "leaders//L1", "bad.key", "a/#b", "x[0]"])
    def test_rejects_unaddressable_paths(self, path):
        with pytest.raises(ValueError):
            normalize_path(path)


class TestHttpDocumentClient:
    @pytest.mark.asyncio
    async def test_fetch_builds_url_with_auth_and_timeout(self, http_client):
        client, session = http_client
        session.request.return_value = _response(body={"L1": {"name": {"en": "A"}}})

        value = await client.fetch("leaders")

        assert value == {"L1": {"name": {"en": "A"}}}
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://store.example.com/leaders.json")
        assert kwargs["params"] == {"auth": "secret"}
        assert kwargs["timeout"] == (3, 5)
        assert "json" not in kwargs

    @pytest.mark.asyncio
    async def test_put_and_patch_send_json_body(self, http_client):
        client, session = http_client
        session.request.return_value = _response(body=None)

        await client.put("donations/d1", {"amount": 10})
        await client.patch("donations/d1", {"status": "approved"})

        put_call, patch_call = session.request.call_args_list
        assert put_call.args[0] == "PUT"
        assert put_call.kwargs["json"] == {"amount": 10}
        assert patch_call.args[0] == "PATCH"
        assert patch_call.kwargs["json"] == {"status": "approved"}

    @pytest.mark.asyncio
    async def test_null_body_classifies_as_absent(self, http_client):
        client, session = http_client
        session.request.return_value = _response(body=None)
        assert isinstance(await client.fetch_value("events"), Absent)

    @pytest.mark.asyncio
    async def test_error_status_raises_transport_error(self, http_client):
        client, session = http_client
        session.request.return_value = _response(status_code=401, reason="Unauthorized")
        with pytest.raises(StoreTransportError) as exc_info:
            await client.fetch("leaders")
        assert exc_info.value.status_code == 401
        assert exc_info.value.path == "leaders"

    @pytest.mark.asyncio
    async def test_network_failure_raises_transport_error(self, http_client):
        client, session = http_client
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(StoreTransportError):
            await client.delete("leaders/L1")

    @pytest.mark.asyncio
    async def test_invalid_json_raises_transport_error(self, http_client):
        client, session = http_client
        response = _response()
        response.json.side_effect = ValueError("no json")
        session.request.return_value = response
        with pytest.raises(StoreTransportError):
            await client.fetch("leaders")


class TestInMemoryDocumentClient:
    @pytest.mark.asyncio
    async def test_put_then_fetch_round_trips_and_copies(self):
        client = InMemoryDocumentClient()
        payload = {"title": "x"}
        await client.put("events/ev1", payload)
        payload["title"] = "mutated"

        fetched = await client.fetch("events/ev1")
        assert fetched == {"title": "x"}
        fetched["title"] = "changed"
        assert (await client.fetch("events/ev1")) == {"title": "x"}

    @pytest.mark.asyncio
    async def test_patch_merges_top_level_fields(self):
        client = InMemoryDocumentClient({"donations": {"d1": {"amount": 5, "status": "pending"}}})
        await client.patch("donations/d1", {"status": "approved"})
        assert (await client.fetch("donations/d1")) == {"amount": 5, "status": "approved"}

    @pytest.mark.asyncio
    async def test_deleting_last_child_prunes_parent(self):
        client = InMemoryDocumentClient({"members": {"m1": {"order": 1}}})
        await client.delete("members/m1")
        assert await client.fetch("members") is None
        assert client.dump() == {}

    @pytest.mark.asyncio
    async def test_keyed_write_into_sequence_converts_to_map(self):
        client = InMemoryDocumentClient({"gallery": [{"id": "0"}, None, {"id": "2"}]})
        await client.put("gallery/g9", {"id": "g9"})
        value = await client.fetch_value("gallery")
        assert isinstance(value, MapValue)
        assert set(value.entries) == {"0", "2", "g9"}

    @pytest.mark.asyncio
    async def test_last_write_wins(self):
        client = InMemoryDocumentClient()
        await client.put("app_settings", {"contactPhone": "1"})
        await client.put("app_settings", {"contactPhone": "2"})
        assert (await client.fetch("app_settings")) == {"contactPhone": "2"}
        assert client.write_count == 2


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("DOCUMENT_STORE_URL", "https://db.example.com")
    monkeypatch.setenv("DOCUMENT_STORE_TIMEOUT_SECONDS", "oops")
    monkeypatch.setenv("DOCUMENT_STORE_PROVIDER", "MEMORY")
    monkeypatch.delenv("DOCUMENT_STORE_AUTH", raising=False)

    config = DocumentStoreConfig.from_env()

    assert config.base_url == "https://db.example.com"
    assert config.timeout_seconds == 15.0
    assert config.provider == "memory"
    assert config.auth_token is None
