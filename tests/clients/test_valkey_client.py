"""Tests for ValkeyClient - JSON storage over redis-py."""

from unittest.mock import patch

import pytest

from clients.valkey_client import ValkeyClient


@pytest.fixture
def redis_mock():
    with patch("clients.valkey_client.redis.from_url") as from_url:
        yield from_url.return_value


@pytest.fixture
def client(redis_mock):
    return ValkeyClient("redis://localhost:6379/0")


class TestValkeyClient:
    def test_pings_on_connect(self, client, redis_mock):
        redis_mock.ping.assert_called_once()

    def test_set_json_uses_ttl(self, client, redis_mock):
        client.set_json("session:abc", {"email": "a@x.com"}, expire_seconds=3600)
        redis_mock.setex.assert_called_once_with("session:abc", 3600, '{"email": "a@x.com"}')

    def test_get_json_missing_key(self, client, redis_mock):
        redis_mock.get.return_value = None
        assert client.get_json("session:abc") is None

    def test_get_json_decodes(self, client, redis_mock):
        redis_mock.get.return_value = '{"email": "a@x.com"}'
        assert client.get_json("session:abc") == {"email": "a@x.com"}

    def test_get_json_invalid_raises_value_error(self, client, redis_mock):
        redis_mock.get.return_value = "{not json"

        with pytest.raises(ValueError, match="session:abc"):
            client.get_json("session:abc")

    def test_delete_reports_existence(self, client, redis_mock):
        redis_mock.delete.return_value = 0
        assert client.delete("session:abc") is False
