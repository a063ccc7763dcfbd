from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)

from humio_exporter import constants

# Keys accepted at the top level of a configuration file for compatibility with
# existing deployments, where the HTTP client settings were not nested.
HTTP_CLIENT_KEYS = ("endpoint", "headers", "timeout")


class HTTPClientSettings(BaseModel):
    """Settings for the HTTP client sending data to Humio."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoint: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: PositiveFloat = constants.DEFAULT_TIMEOUT

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("headers")
    @classmethod
    def _lowercase_header_names(cls, value: dict[str, str]) -> dict[str, str]:
        headers: dict[str, str] = {}
        for name, header in value.items():
            lowered = name.lower()
            if lowered in headers:
                raise ValueError(f"header {lowered!r} is given more than once")
            headers[lowered] = header
        return headers


class QueueSettings(BaseModel):
    """Settings of the queue buffering data before it is sent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    num_consumers: PositiveInt = constants.DEFAULT_QUEUE_NUM_CONSUMERS
    queue_size: PositiveInt = constants.DEFAULT_QUEUE_SIZE


class RetrySettings(BaseModel):
    """Settings for retrying failed requests."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    initial_interval: PositiveFloat = constants.DEFAULT_RETRY_INITIAL_INTERVAL
    max_interval: PositiveFloat = constants.DEFAULT_RETRY_MAX_INTERVAL
    max_elapsed_time: NonNegativeFloat = constants.DEFAULT_RETRY_MAX_ELAPSED_TIME


class LogsSettings(BaseModel):
    """Settings specific to logs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Custom parser, used when no parser is associated with the ingest token
    log_parser: str = ""


class TracesSettings(BaseModel):
    """Settings specific to traces."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Unix timestamps instead of ISO 8601 formatted strings
    unix_timestamps: bool = False


class HumioExporterSettings(BaseModel):
    """Humio exporter settings loaded from YAML configuration files.

    Only field types are checked on construction. Semantic checks such as
    required values or header conflicts are done by
    `humio_exporter.config.validate_config`, so that a configuration can be
    loaded and reported on before it is rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Ingest token identifying and authorizing with a Humio repository
    ingest_token: str = ""

    http_client: HTTPClientSettings = Field(default_factory=HTTPClientSettings)
    sending_queue: QueueSettings = Field(default_factory=QueueSettings)
    retry_on_failure: RetrySettings = Field(default_factory=RetrySettings)

    disable_compression: bool = False

    # Key-value pairs targeting specific data sources inside Humio
    tags: dict[str, str] = Field(default_factory=dict)

    # Whether the service name should not be added as a tag automatically
    disable_service_tag: bool = False

    logs: LogsSettings = Field(default_factory=LogsSettings)
    traces: TracesSettings = Field(default_factory=TracesSettings)

    @model_validator(mode="before")
    @classmethod
    def _lift_http_client_keys(cls, data: Any) -> Any:
        """Move top-level `endpoint`, `headers` and `timeout` into `http_client`.

        Values already given under `http_client` take precedence.
        """
        if not isinstance(data, dict):
            return data
        flat = {key: data[key] for key in HTTP_CLIENT_KEYS if key in data}
        if not flat:
            return data

        http_client = data.get("http_client") or {}
        if isinstance(http_client, HTTPClientSettings):
            http_client = http_client.model_dump(exclude_unset=True)
        if not isinstance(http_client, dict):
            # leave it to field validation to report the bad value
            return data

        data = {key: value for key, value in data.items() if key not in flat}
        data["http_client"] = {**flat, **http_client}
        return data

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def endpoint(self) -> str:
        return self.http_client.endpoint

    @property
    def headers(self) -> Mapping[str, str]:
        # read-only view, the model being frozen does not cover the dict
        return MappingProxyType(self.http_client.headers)

    @property
    def compression_enabled(self) -> bool:
        return not self.disable_compression
