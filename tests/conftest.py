"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from mediaupload.storage.local import LocalStorageBackend

FIXED_NOW = datetime(2024, 5, 24, 12, 30, 45, tzinfo=timezone.utc)

TEST_ENDPOINT = "https://proj-ref.storage.supabase.co/storage/v1/s3"
TEST_ACCESS_KEY_ID = "AKIDEXAMPLE0123456789"
TEST_SECRET_ACCESS_KEY = "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY"


@pytest.fixture
def fixed_clock():
    """Clock that always reads FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def signing_settings(monkeypatch):
    """Configure S3 signing settings."""
    from mediaupload.core.config import settings

    monkeypatch.setattr(settings, "S3_ACCESS_KEY_ID", TEST_ACCESS_KEY_ID)
    monkeypatch.setattr(settings, "S3_SECRET_ACCESS_KEY", TEST_SECRET_ACCESS_KEY)
    monkeypatch.setattr(settings, "S3_ENDPOINT", TEST_ENDPOINT)
    monkeypatch.setattr(settings, "S3_REGION", "us-east-1")
    monkeypatch.setattr(settings, "S3_GATEWAY_PREFIX", "/storage/v1/s3")
    monkeypatch.setattr(settings, "PRESIGNED_URL_EXPIRES_SECONDS", 3600)
    return settings


@pytest.fixture
def unconfigured_signing(monkeypatch):
    """Remove every S3 signing setting."""
    from mediaupload.core.config import settings

    monkeypatch.setattr(settings, "S3_ACCESS_KEY_ID", "")
    monkeypatch.setattr(settings, "S3_SECRET_ACCESS_KEY", "")
    monkeypatch.setattr(settings, "S3_ENDPOINT", "")
    return settings


@pytest.fixture
def local_backend(tmp_path):
    """Local storage backend rooted in a temporary directory."""
    return LocalStorageBackend(base_path=tmp_path, public_base_url="http://files.test")
