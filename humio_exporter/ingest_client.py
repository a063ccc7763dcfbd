"""HTTP client for sending data to the Humio ingest APIs."""

import gzip
import json
import logging
from typing import Any

import requests

from humio_exporter.config import SanitizedSettings

logger = logging.getLogger(__name__)


class HumioIngestClient:
    """HTTP client for the structured and unstructured ingest APIs.

    Endpoints, headers, timeout and compression are all taken from sanitized
    settings; payloads are sent as given, encoded as JSON.
    """

    def __init__(self, config: SanitizedSettings):
        """Initialize the ingest client.

        Args:
            config: Validated and sanitized exporter settings
        """
        self.config = config
        self.session = requests.Session()
        self.session.headers.update(config.headers)

    def _encode(self, payload: list[dict[str, Any]]) -> bytes:
        body = json.dumps(payload).encode("utf-8")
        if self.config.compression_enabled:
            return gzip.compress(body)
        return body

    def _post(self, url: str, payload: list[dict[str, Any]]) -> None:
        """Post a payload to one of the ingest APIs.

        Raises:
            requests.RequestException: If the request fails.
        """
        logger.debug("Posting %d payload entries to %s", len(payload), url)
        response = self.session.post(
            url=url,
            data=self._encode(payload),
            timeout=self.config.timeout,
        )
        if response.status_code != 200:
            logger.error(
                "Posting payload failed, response: %d: %s",
                response.status_code,
                response.text,
            )
            raise requests.RequestException(
                f"Ingest failed with response code: {response.status_code}"
                f" and text: {response.text}",
                response=response,
            )

    def send_structured(self, payload: list[dict[str, Any]]) -> None:
        """Send pre-parsed events to the structured ingest API."""
        self._post(self.config.structured_endpoint, payload)

    def send_unstructured(self, payload: list[dict[str, Any]]) -> None:
        """Send raw messages to the unstructured ingest API."""
        self._post(self.config.unstructured_endpoint, payload)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HumioIngestClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
