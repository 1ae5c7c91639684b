"""Tests for MfaProviderClient."""

from unittest.mock import Mock
from urllib.parse import parse_qs

import pytest
import requests
import responses

from auth.config import MfaConfig
from clients.mfa_client import MfaProviderClient, MfaProviderError

SITE_URL = "https://mfa.example.com/"
ENDPOINT = "https://mfa.example.com/api/v9/is_user_valid"


@pytest.fixture
def mfa_config():
    return MfaConfig(site_url=SITE_URL, app_uid="uid-1", app_secret="s3cret", timeout_seconds=2)


@pytest.fixture
def client(mfa_config):
    return MfaProviderClient(mfa_config)


class TestIsUserValid:
    @responses.activate
    def test_posts_form_and_returns_body(self, client):
        responses.add(
            responses.POST,
            ENDPOINT,
            json={"valid": True, "registration_state": "finished"},
            status=200,
        )

        body = client.is_user_valid("mfa@x.com")

        assert body == {"valid": True, "registration_state": "finished"}
        form = parse_qs(responses.calls[0].request.body)
        assert form == {"email": ["mfa@x.com"], "uid": ["uid-1"], "secret": ["s3cret"]}

    def test_endpoint_joins_site_url(self, client):
        assert client.endpoint == ENDPOINT

    @responses.activate
    def test_timeout_raises(self, client):
        responses.add(responses.POST, ENDPOINT, body=requests.exceptions.ReadTimeout("slow"))

        with pytest.raises(MfaProviderError, match="timed out"):
            client.is_user_valid("mfa@x.com")

    @responses.activate
    def test_connection_failure_raises(self, client):
        responses.add(responses.POST, ENDPOINT, body=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(MfaProviderError):
            client.is_user_valid("mfa@x.com")

    @responses.activate
    def test_non_200_raises(self, client):
        responses.add(responses.POST, ENDPOINT, json={"valid": True}, status=503)

        with pytest.raises(MfaProviderError, match="503"):
            client.is_user_valid("mfa@x.com")

    @responses.activate
    def test_invalid_json_raises(self, client):
        responses.add(responses.POST, ENDPOINT, body="<html>", status=200)

        with pytest.raises(MfaProviderError):
            client.is_user_valid("mfa@x.com")

    @responses.activate
    def test_non_object_body_raises(self, client):
        responses.add(responses.POST, ENDPOINT, json=[True], status=200)

        with pytest.raises(MfaProviderError):
            client.is_user_valid("mfa@x.com")

    def test_timeout_is_passed_to_requests(self, mfa_config):
        session = Mock(spec=requests.Session)
        session.post.return_value.status_code = 200
        session.post.return_value.json.return_value = {"valid": False}

        MfaProviderClient(mfa_config, session=session).is_user_valid("a@x.com")

        assert session.post.call_args.kwargs["timeout"] == 2
