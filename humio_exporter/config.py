"""Validation and sanitization of Humio exporter settings.

A configuration is checked once at startup with `validate_config`, so that the
exporter fails early, and then turned into a ready-to-use `SanitizedSettings`
by `sanitize_config`. Neither step performs any I/O.
"""

import logging
import posixpath
from collections.abc import Callable, Mapping
from urllib.parse import urlsplit, urlunsplit

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, TypeAdapter, ValidationError

from humio_exporter import constants
from humio_exporter.settings import HumioExporterSettings

logger = logging.getLogger(__name__)

_http_url = TypeAdapter(AnyHttpUrl)


class ConfigValidationError(ValueError):
    """Exception raised when the exporter configuration is invalid."""


class EndpointError(ConfigValidationError):
    """Exception raised when no ingest URL can be built from the endpoint."""


class SanitizedSettings(BaseModel):
    """Settings ready to be used by the transport layer.

    Holds the validated settings with their final header set, together with
    the URLs of both ingest APIs.
    """

    model_config = ConfigDict(frozen=True)

    settings: HumioExporterSettings
    structured_endpoint: str
    unstructured_endpoint: str

    @property
    def headers(self) -> Mapping[str, str]:
        return self.settings.headers

    @property
    def timeout(self) -> float:
        return self.settings.http_client.timeout

    @property
    def compression_enabled(self) -> bool:
        return self.settings.compression_enabled


def get_endpoint(endpoint: str, dest: str) -> str:
    """Get the URL of a destination path on the Humio endpoint.

    The destination is joined onto any path already present in the endpoint,
    and the resulting path is cleaned of duplicate separators.

    Args:
        endpoint: Base URL of the Humio instance
        dest: Path relative to the endpoint, e.g. one of the ingest API paths

    Returns:
        The URL of the destination.

    Raises:
        EndpointError: If the endpoint is not a valid http(s) URL.
    """
    if any(char.isspace() or not char.isprintable() for char in endpoint):
        raise EndpointError(f"endpoint {endpoint!r} contains invalid characters")

    try:
        parts = urlsplit(endpoint)
        # port is parsed lazily, out of range or non-numeric ports raise here
        _ = parts.port
    except ValueError as e:
        raise EndpointError(f"unable to parse endpoint {endpoint!r}: {e}") from e

    if parts.scheme not in ("http", "https"):
        raise EndpointError(f"endpoint {endpoint!r} must use http or https")
    if not parts.hostname:
        raise EndpointError(f"endpoint {endpoint!r} has no host")

    path = posixpath.normpath(posixpath.join("/", parts.path.lstrip("/"), dest))
    url = urlunsplit(parts._replace(path=path))

    try:
        _http_url.validate_python(url)
    except ValidationError as e:
        raise EndpointError(f"unable to parse endpoint {endpoint!r}") from e

    return url


def _check_ingest_token(settings: HumioExporterSettings) -> None:
    if not settings.ingest_token:
        raise ConfigValidationError("missing ingest token")


def _check_endpoint(settings: HumioExporterSettings) -> None:
    if not settings.endpoint:
        raise ConfigValidationError("missing endpoint")


def _check_tags(settings: HumioExporterSettings) -> None:
    if settings.disable_service_tag and not settings.tags:
        raise ConfigValidationError(
            "at least one custom tag required when service tag is disabled"
        )


def _check_ingest_url(settings: HumioExporterSettings) -> None:
    # Ensure that it is possible to construct URLs to access the ingest API
    try:
        get_endpoint(settings.endpoint, constants.UNSTRUCTURED_PATH)
    except EndpointError as e:
        raise EndpointError(f"invalid endpoint: {e}") from e


def _check_content_type(settings: HumioExporterSettings) -> None:
    content_type = settings.headers.get(constants.CONTENT_TYPE_HEADER)
    if content_type is not None and content_type != constants.CONTENT_TYPE:
        raise ConfigValidationError("content-type must be application/json")


def _check_authorization(settings: HumioExporterSettings) -> None:
    # Generated from the ingest token, must never come from the user
    if constants.AUTHORIZATION_HEADER in settings.headers:
        raise ConfigValidationError(
            "authorization header must not be set by the user"
        )


def _check_content_encoding(settings: HumioExporterSettings) -> None:
    encoding = settings.headers.get(constants.CONTENT_ENCODING_HEADER)
    if encoding is None:
        return
    if settings.disable_compression or encoding != constants.CONTENT_ENCODING:
        raise ConfigValidationError(
            "content-encoding mismatch with compression setting"
        )


# Checks run in this order, the first failure is reported
VALIDATION_CHECKS: tuple[Callable[[HumioExporterSettings], None], ...] = (
    _check_ingest_token,
    _check_endpoint,
    _check_tags,
    _check_ingest_url,
    _check_content_type,
    _check_authorization,
    _check_content_encoding,
)


def validate_config(settings: HumioExporterSettings) -> None:
    """Ensure that a valid configuration has been provided.

    Args:
        settings: Settings as loaded from the configuration

    Raises:
        ConfigValidationError: For the first violated requirement.
    """
    for check in VALIDATION_CHECKS:
        check(settings)
    logger.debug("Configuration for endpoint %s is valid", settings.endpoint)


def sanitize_config(settings: HumioExporterSettings) -> SanitizedSettings:
    """Derive the ingest URLs and the headers sent with every request.

    The settings are expected to be validated first. Required headers are
    always (re)asserted and existing headers are never removed, so sanitizing
    already sanitized settings gives the same result.

    Args:
        settings: Settings as loaded from the configuration

    Returns:
        New settings with the final headers and both ingest URLs.

    Raises:
        EndpointError: If the endpoint is malformed.
    """
    try:
        structured = get_endpoint(settings.endpoint, constants.STRUCTURED_PATH)
        unstructured = get_endpoint(settings.endpoint, constants.UNSTRUCTURED_PATH)
    except EndpointError as e:
        raise EndpointError(f"malformed endpoint {settings.endpoint!r}") from e

    headers = dict(settings.headers)
    headers[constants.CONTENT_TYPE_HEADER] = constants.CONTENT_TYPE
    headers[constants.AUTHORIZATION_HEADER] = f"Bearer {settings.ingest_token}"
    if settings.compression_enabled:
        headers[constants.CONTENT_ENCODING_HEADER] = constants.CONTENT_ENCODING
    headers.setdefault(constants.USER_AGENT_HEADER, constants.USER_AGENT)

    http_client = settings.http_client.model_copy(update={"headers": headers})
    return SanitizedSettings(
        settings=settings.model_copy(update={"http_client": http_client}),
        structured_endpoint=structured,
        unstructured_endpoint=unstructured,
    )


def load_config(settings: HumioExporterSettings) -> SanitizedSettings:
    """Validate and sanitize settings at startup.

    Raises:
        ConfigValidationError: If the settings cannot be used.
    """
    validate_config(settings)
    config = sanitize_config(settings)
    logger.info("Structured ingest endpoint: %s", config.structured_endpoint)
    logger.info("Unstructured ingest endpoint: %s", config.unstructured_endpoint)
    return config
