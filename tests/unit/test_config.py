"""Unit tests for configuration handling."""

import pytest

from nisync import config
from nisync.exceptions import ConfigurationError
from nisync.store.local import LocalRecordStore
from nisync.store.s3 import S3RecordStore


@pytest.mark.unit
class TestPolicies:
    """Test settings read at call time."""

    def test_unit_mismatch_defaults_to_error(self):
        assert config.unit_mismatch_policy() == "error"

    def test_unit_mismatch_warn(self, monkeypatch):
        monkeypatch.setenv("NISYNC_UNIT_MISMATCH", "WARN")
        assert config.unit_mismatch_policy() == "warn"

    def test_invalid_unit_mismatch(self, monkeypatch):
        monkeypatch.setenv("NISYNC_UNIT_MISMATCH", "ignore")
        with pytest.raises(ConfigurationError):
            config.unit_mismatch_policy()

    def test_revision_check_enabled_by_default(self):
        assert config.check_revision_enabled() is True

    def test_revision_check_disabled(self, monkeypatch):
        monkeypatch.setenv("NISYNC_CHECK_REVISION", "false")
        assert config.check_revision_enabled() is False


@pytest.mark.unit
class TestValidateConfig:
    """Test store configuration validation."""

    def test_unknown_store(self, monkeypatch):
        monkeypatch.setattr(config, "STORE", "ftp")
        with pytest.raises(ConfigurationError, match="NISYNC_STORE"):
            config.validate_config()

    def test_s3_without_bucket(self, monkeypatch):
        monkeypatch.setattr(config, "STORE", "s3")
        monkeypatch.setattr(config, "S3_BUCKET_NAME", "")
        with pytest.raises(ConfigurationError, match="bucket"):
            config.validate_config()

    def test_local_without_root(self, monkeypatch):
        monkeypatch.setattr(config, "STORE", "local")
        monkeypatch.setattr(config, "LOCAL_ROOT", "")
        with pytest.raises(ConfigurationError):
            config.validate_config()


@pytest.mark.unit
class TestGetStore:
    """Test store construction from configuration."""

    def test_local_store(self, monkeypatch, temp_dir):
        monkeypatch.setattr(config, "STORE", "local")
        monkeypatch.setattr(config, "LOCAL_ROOT", str(temp_dir / "records"))

        store = config.get_store()

        assert isinstance(store, LocalRecordStore)
        assert store.root == str(temp_dir / "records")
        assert (temp_dir / "records").is_dir()

    def test_s3_store(self, monkeypatch):
        monkeypatch.setattr(config, "STORE", "s3")
        monkeypatch.setattr(config, "S3_BUCKET_NAME", "my-bucket")
        monkeypatch.setattr(config, "S3_PREFIX", "nature/indicators")

        store = config.get_store()

        assert isinstance(store, S3RecordStore)
        assert store.bucket == "my-bucket"
        assert store.prefix == "nature/indicators"
