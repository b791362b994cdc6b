"""
Unit tests for the HTTP transport (apidrift/http/client.py)

Ensures URL construction, authentication headers, token caching, and
error mapping behave as comparison runs expect.
"""

import json
import logging
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests

from apidrift.config.settings import Authentication
from apidrift.http.client import (
    AccessTokenHolder,
    ApiClient,
    TransportError,
    construct_url,
)


def _response(status_code=200, text="", headers=None):
    def _json():
        return json.loads(text)

    return SimpleNamespace(status_code=status_code, text=text, headers=headers or {}, json=_json)


def _session(request_response=None, token_response=None):
    session = Mock(spec=requests.Session)
    session.request.return_value = request_response or _response(text="{}")
    session.post.return_value = token_response or _response(
        text='{"access_token": "tok-1", "expires_in": 3600}'
    )
    return session


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestConstructUrl:
    """Tests for joining base URLs and operation paths."""

    def test_joins_with_single_slash(self):
        """Test a trailing slash on the base is dropped."""
        assert construct_url("http://h/api/", "users", "REST") == "http://h/api/users"
        assert construct_url("http://h/api", "/users", "REST") == "http://h/api/users"

    def test_base_already_ends_with_path(self):
        """Test the path is not duplicated."""
        assert construct_url("http://h/api/users", "/users", "REST") == "http://h/api/users"

    def test_empty_path(self):
        """Test a blank path yields the base."""
        assert construct_url("http://h/api/", "  ", "REST") == "http://h/api"
        assert construct_url("http://h/api", None, "REST") == "http://h/api"

    def test_soap_ignores_path(self):
        """Test SOAP endpoints use the base URL only."""
        assert construct_url("http://h/ws/", "ignored", "SOAP") == "http://h/ws/"

    def test_missing_base(self):
        """Test a missing base yields an empty URL."""
        assert construct_url(None, "/x", "REST") == ""


class TestAccessTokenHolder:
    """Tests for token expiry handling."""

    def test_empty_holder_invalid(self):
        """Test no token is valid before one is stored."""
        assert AccessTokenHolder().token is None

    def test_valid_until_refresh_margin(self):
        """Test a token expires 30 seconds before its lifetime ends."""
        clock = FakeClock()
        holder = AccessTokenHolder(clock=clock)
        holder.store("tok", expires_in=100)

        clock.now += 69
        assert holder.token == "tok"
        clock.now += 1
        assert holder.token is None

    def test_default_lifetime(self):
        """Test tokens without expires_in get the default lifetime."""
        clock = FakeClock()
        holder = AccessTokenHolder(clock=clock)
        holder.store("tok")

        clock.now += 269
        assert holder.is_valid()

    def test_clear(self):
        """Test clear drops the token."""
        holder = AccessTokenHolder()
        holder.store("tok", 3600)
        holder.clear()

        assert not holder.is_valid()


class TestApiClient:
    """Tests for request execution and authentication."""

    def test_anonymous_request(self):
        """Test a call without authentication sends no Authorization header."""
        session = _session(_response(201, '{"ok":true}', {"Content-Type": "application/json"}))
        client = ApiClient(session=session)

        response = client.send_request("http://h/x", "post", {"Accept": "application/json"}, '{"a":1}')

        args, kwargs = session.request.call_args
        assert args == ("POST", "http://h/x")
        assert kwargs["headers"] == {"Accept": "application/json"}
        assert kwargs["data"] == b'{"a":1}'
        assert response.status_code == 201
        assert response.body == '{"ok":true}'
        assert response.headers == {"Content-Type": "application/json"}
        assert response.duration_ms >= 0

    def test_empty_body_sent_as_none(self):
        """Test an empty payload sends no body."""
        session = _session()
        ApiClient(session=session).send_request("http://h/x", "GET", {}, "")

        assert session.request.call_args.kwargs["data"] is None

    def test_basic_auth(self):
        """Test client id and secret without token URL use basic auth."""
        session = _session()
        client = ApiClient(Authentication(client_id="user", client_secret="pass"), session=session)

        client.send_request("http://h/x", "GET")

        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Basic dXNlcjpwYXNz"
        session.post.assert_not_called()

    def test_oauth_token_fetched_and_cached(self):
        """Test one token request serves several calls."""
        session = _session()
        auth = Authentication(token_url="http://auth/token", client_id="cid", client_secret="cs")
        client = ApiClient(auth, session=session)

        client.send_request("http://h/a", "POST")
        client.send_request("http://h/b", "POST")

        session.post.assert_called_once()
        form = session.post.call_args.kwargs["data"]
        assert form == {"grant_type": "client_credentials", "client_id": "cid", "client_secret": "cs"}
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-1"

    def test_oauth_token_refreshed_after_expiry(self):
        """Test an expired token is replaced."""
        clock = FakeClock()
        session = _session(token_response=_response(text='{"access_token": "tok-1", "expires_in": 60}'))
        auth = Authentication(token_url="http://auth/token", client_id="cid", client_secret="cs")
        client = ApiClient(auth, session=session, token_holder=AccessTokenHolder(clock=clock))

        client.send_request("http://h/a", "POST")
        clock.now += 31
        client.send_request("http://h/a", "POST")

        assert session.post.call_count == 2

    def test_token_request_logs_masked_credentials(self, caplog):
        """Test the client secret and issued token never reach the log in clear."""
        session = _session(
            token_response=_response(text='{"access_token": "tok-long-value", "expires_in": 3600}')
        )
        auth = Authentication(
            token_url="http://auth/token", client_id="cid", client_secret="very-secret-value"
        )

        with caplog.at_level(logging.DEBUG, logger="apidrift.http.client"):
            ApiClient(auth, session=session).send_request("http://h/a", "POST")

        assert "Requesting new access token" in caplog.text
        assert "very-secret-value" not in caplog.text
        assert "tok-long-value" not in caplog.text
        assert "ve********" in caplog.text
        assert "to********" in caplog.text

    def test_tokens_scoped_per_client(self):
        """Test two clients do not share tokens."""
        session = _session()
        auth = Authentication(token_url="http://auth/token", client_id="cid", client_secret="cs")

        ApiClient(auth, session=session).send_request("http://h/a", "POST")
        ApiClient(auth, session=session).send_request("http://h/a", "POST")

        assert session.post.call_count == 2

    def test_token_endpoint_rejection(self):
        """Test a non-200 token response raises TransportError."""
        session = _session(token_response=_response(401, "denied"))
        auth = Authentication(token_url="http://auth/token", client_id="cid", client_secret="cs")

        with pytest.raises(TransportError) as exc_info:
            ApiClient(auth, session=session).send_request("http://h/a", "POST")

        assert exc_info.value.status_code == 401
        session.request.assert_not_called()

    def test_token_response_without_token(self):
        """Test a token response lacking access_token raises TransportError."""
        session = _session(token_response=_response(text='{"token_type": "bearer"}'))
        auth = Authentication(token_url="http://auth/token", client_id="cid", client_secret="cs")

        with pytest.raises(TransportError, match="access_token"):
            ApiClient(auth, session=session).send_request("http://h/a", "POST")

    def test_network_failure(self):
        """Test requests exceptions are wrapped in TransportError."""
        session = _session()
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            ApiClient(session=session).send_request("http://h/a", "POST")

        assert exc_info.value.url == "http://h/a"

    def test_error_status_returned(self):
        """Test non-2xx responses are returned for comparison."""
        session = _session(_response(500, "<html>boom</html>"))

        response = ApiClient(session=session).send_request("http://h/a", "POST")

        assert response.status_code == 500
        assert response.body == "<html>boom</html>"
