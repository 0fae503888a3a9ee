"""Tests for the requests-based HTTP client."""

from unittest.mock import MagicMock

import pytest
import requests

from loanbatch.config import Settings
from loanbatch.http_client import HttpClient


@pytest.fixture
def client() -> HttpClient:
    client = HttpClient(Settings(timeout_sec=7))
    client.s = MagicMock()
    return client


class TestPostJson:

    def test_returns_status_content_type_and_body(self, client) -> None:
        response = MagicMock(status_code=201, headers={"content-type": "application/json"}, text='["ok", {}]')
        client.s.post.return_value = response

        result = client.post_json("http://svc/api/clients", {"firstName": "Juan"})

        assert result == (201, "application/json", '["ok", {}]')
        client.s.post.assert_called_once_with(
            "http://svc/api/clients", json={"firstName": "Juan"}, timeout=7
        )

    def test_empty_body(self, client) -> None:
        client.s.post.return_value = MagicMock(status_code=500, headers={}, text=None)

        assert client.post_json("http://svc/x") == (500, "", "")

    @pytest.mark.parametrize(
        "error",
        [requests.ConnectionError("refused"), requests.Timeout("slow")],
    )
    def test_transport_error_is_status_zero(self, client, error) -> None:
        client.s.post.side_effect = error

        status, content_type, body = client.post_json("http://svc/x", {})

        assert status == 0
        assert content_type == ""
        assert body.startswith("Network error: ")

    def test_no_retry(self, client) -> None:
        client.s.post.side_effect = requests.ConnectionError("refused")

        client.post_json("http://svc/x")

        assert client.s.post.call_count == 1


def test_session_headers_and_close() -> None:
    client = HttpClient(Settings())

    assert client.s.headers["Accept"] == "application/json"
    assert client.s.headers["Content-Type"] == "application/json"
    assert client.timeout == 20

    client.close()
