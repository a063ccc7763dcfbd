"""Unit tests for ingest_client module."""

import gzip
import json

import pytest
import requests
import requests_mock
from pytest_mock import MockerFixture

from humio_exporter.config import sanitize_config
from humio_exporter.ingest_client import HumioIngestClient
from humio_exporter.settings import HumioExporterSettings

STRUCTURED_URL = "https://cloud.example.com/api/v1/ingest/humio-structured"
UNSTRUCTURED_URL = "https://cloud.example.com/api/v1/ingest/humio-unstructured"


class TestHumioIngestClient:
    """Tests for the HumioIngestClient class."""

    @pytest.fixture
    def client(self, sanitized):
        """Create a HumioIngestClient instance for testing."""
        with HumioIngestClient(sanitized) as client:
            yield client

    @pytest.fixture
    def uncompressed_client(self):
        """Create a HumioIngestClient with compression disabled."""
        settings = HumioExporterSettings.model_validate(
            {
                "ingest_token": "abc123",
                "endpoint": "https://cloud.example.com",
                "disable_compression": True,
            }
        )
        with HumioIngestClient(sanitize_config(settings)) as client:
            yield client

    def test_send_structured(self, requests_mock: requests_mock.Mocker, client):
        """Test sending events to the structured ingest API."""
        requests_mock.post(STRUCTURED_URL, status_code=200, json={})
        payload = [{"tags": {"host": "web-01"}, "events": [{"rawstring": "hello"}]}]

        client.send_structured(payload)

        request = requests_mock.last_request
        assert request.url == STRUCTURED_URL
        assert json.loads(gzip.decompress(request.body)) == payload

        # Check session headers
        expected_headers = {
            "Content-Type": "application/json",
            "Authorization": "Bearer abc123",
            "Content-Encoding": "gzip",
            "User-Agent": "humio-exporter-python",
        }
        for key, value in expected_headers.items():
            assert request.headers[key] == value

    def test_send_unstructured(self, requests_mock: requests_mock.Mocker, client):
        """Test sending messages to the unstructured ingest API."""
        requests_mock.post(UNSTRUCTURED_URL, status_code=200, json={})
        payload = [{"fields": {}, "messages": ["hello"]}]

        client.send_unstructured(payload)

        request = requests_mock.last_request
        assert request.url == UNSTRUCTURED_URL
        assert json.loads(gzip.decompress(request.body)) == payload

    def test_send_without_compression(
        self, requests_mock: requests_mock.Mocker, uncompressed_client
    ):
        """Test that the body is plain JSON when compression is disabled."""
        requests_mock.post(UNSTRUCTURED_URL, status_code=200, json={})
        payload = [{"messages": ["hello"]}]

        uncompressed_client.send_unstructured(payload)

        request = requests_mock.last_request
        assert json.loads(request.body) == payload
        assert "Content-Encoding" not in request.headers

    def test_send_failure(self, requests_mock: requests_mock.Mocker, client):
        """Test ingest failure handling."""
        requests_mock.post(STRUCTURED_URL, status_code=401, text="Unauthorized")

        with pytest.raises(requests.RequestException) as exc_info:
            client.send_structured([])

        assert "Ingest failed with response code: 401" in str(exc_info.value)
        assert "Unauthorized" in str(exc_info.value)
        assert exc_info.value.response.status_code == 401

    def test_send_network_error(self, mocker: MockerFixture, client):
        """Test that network errors propagate."""
        mock_post = mocker.patch.object(
            client.session, "post", side_effect=requests.ConnectionError("Network error")
        )

        with pytest.raises(requests.ConnectionError):
            client.send_unstructured([])

        mock_post.assert_called_once()

    def test_timeout_passed(self, mocker: MockerFixture, client):
        """Test that the configured timeout is used for requests."""
        mock_response = mocker.Mock()
        mock_response.status_code = 200
        mock_post = mocker.patch.object(client.session, "post", return_value=mock_response)

        client.send_structured([])

        call_args = mock_post.call_args
        assert call_args[1]["url"] == STRUCTURED_URL
        assert call_args[1]["timeout"] == 5.0

    def test_close(self, mocker: MockerFixture, sanitized):
        """Test that leaving the context closes the session."""
        client = HumioIngestClient(sanitized)
        mock_close = mocker.patch.object(client.session, "close")

        with client:
            pass

        mock_close.assert_called_once()
