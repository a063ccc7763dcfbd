"""Shared pytest fixtures and configuration."""

import pytest

from humio_exporter.config import sanitize_config
from humio_exporter.settings import HumioExporterSettings


@pytest.fixture
def sample_config_data():
    """Sample configuration as loaded from a YAML file."""
    return {
        "ingest_token": "abc123",
        "endpoint": "https://cloud.example.com",
        "tags": {"host": "web-01"},
        "logs": {"log_parser": "json"},
        "traces": {"unix_timestamps": True},
    }


@pytest.fixture
def settings(sample_config_data):
    """Valid exporter settings."""
    return HumioExporterSettings.model_validate(sample_config_data)


@pytest.fixture
def sanitized(settings):
    """Sanitized exporter settings with compression enabled."""
    return sanitize_config(settings)
