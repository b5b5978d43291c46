"""Unit tests for infrastructure settings."""

import pytest
from pydantic import ValidationError

from infrastructure.settings import (
    ConsumerSettings,
    DatabaseSettings,
    RelaySettings,
    Settings,
)


class TestDatabaseSettingsPoolConfiguration:
    """Tests for connection pool configuration."""

    def test_default_pool_settings(self):
        """Should have sensible pool defaults."""
        settings = DatabaseSettings()
        assert settings.pool_min_connections >= 1
        assert settings.pool_max_connections >= settings.pool_min_connections
        assert settings.pool_max_connections <= 20

    def test_pool_settings_from_fields(self):
        """Should accept pool settings via constructor."""
        settings = DatabaseSettings(pool_min_connections=5, pool_max_connections=15)
        assert settings.pool_min_connections == 5
        assert settings.pool_max_connections == 15

    def test_pool_max_must_be_greater_than_or_equal_to_min(self):
        """Should validate max >= min."""
        with pytest.raises(ValidationError) as exc_info:
            DatabaseSettings(pool_min_connections=10, pool_max_connections=5)

        assert "pool_max_connections" in str(exc_info.value)

    def test_pool_max_equal_to_min_is_valid(self):
        """Should allow max == min."""
        settings = DatabaseSettings(pool_min_connections=5, pool_max_connections=5)
        assert settings.pool_min_connections == 5
        assert settings.pool_max_connections == 5

    def test_pool_min_must_be_positive(self):
        """Pool min connections must be >= 1."""
        with pytest.raises(ValidationError):
            DatabaseSettings(pool_min_connections=0)

    def test_pool_max_respects_upper_limit(self):
        """Pool max should not exceed reasonable limit."""
        with pytest.raises(ValidationError):
            DatabaseSettings(pool_max_connections=101)

    def test_connection_string_omits_password(self, mock_db_settings):
        """Connection string is safe to log."""
        assert mock_db_settings.connection_string == (
            "postgresql://testuser@testhost:5432/testdb"
        )

    def test_reads_prefixed_environment(self, monkeypatch):
        """Should load values from BUILDFLOW_DB_* variables."""
        monkeypatch.setenv("BUILDFLOW_DB_HOST", "db.internal")
        monkeypatch.setenv("BUILDFLOW_DB_PASSWORD", "s3cret")

        settings = DatabaseSettings()

        assert settings.host == "db.internal"
        assert settings.password.get_secret_value() == "s3cret"


class TestRelaySettings:
    """Tests for relay settings."""

    def test_defaults(self):
        settings = RelaySettings()
        assert settings.batch_size == 15
        assert settings.max_attempts == 10
        assert settings.poll_interval_seconds == 2.0
        assert settings.metrics_interval_seconds == 60.0
        assert settings.metrics_sample_size == 100

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("BUILDFLOW_RELAY_BATCH_SIZE", "50")
        monkeypatch.setenv("BUILDFLOW_RELAY_POLL_INTERVAL_SECONDS", "0.5")

        settings = RelaySettings()

        assert settings.batch_size == 50
        assert settings.poll_interval_seconds == 0.5

    def test_rejects_zero_batch_size(self):
        with pytest.raises(ValidationError):
            RelaySettings(batch_size=0)

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValidationError):
            RelaySettings(poll_interval_seconds=0)


class TestConsumerSettings:
    """Tests for consumer default settings."""

    def test_defaults(self):
        settings = ConsumerSettings()
        assert settings.batch_size == 10
        assert settings.max_attempts == 10
        assert settings.poll_interval_seconds == 5.0

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("BUILDFLOW_CONSUMER_MAX_ATTEMPTS", "3")

        assert ConsumerSettings().max_attempts == 3


class TestSettings:
    """Tests for the top-level application settings."""

    def test_defaults(self):
        settings = Settings()
        assert settings.app_name == "Buildflow Events"
        assert settings.debug is False
        assert settings.workers_enabled is True
        assert settings.event_store == "postgres"

    def test_event_store_from_environment(self, monkeypatch):
        monkeypatch.setenv("BUILDFLOW_EVENT_STORE", "memory")

        assert Settings().event_store == "memory"

    def test_rejects_unknown_event_store(self):
        with pytest.raises(ValidationError):
            Settings(event_store="kafka")
