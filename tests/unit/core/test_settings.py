"""
Unit tests for Settings.
"""

from mailsub.config import Settings


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("MAILSUB_GRAPH_SUBSCRIPTION_EXPIRATION_HOURS", "24")
        monkeypatch.setenv("MAILSUB_AZURE_TENANT_ID", "tenant-from-env")

        settings = Settings()

        assert settings.graph_subscription_expiration_hours == 24
        assert settings.azure_tenant_id == "tenant-from-env"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MAILSUB_GRAPH_SUBSCRIPTION_EXPIRATION_HOURS", raising=False)
        monkeypatch.delenv("MAILSUB_GRAPH_CLIENT_CACHE_MINUTES", raising=False)

        settings = Settings(_env_file=None)

        assert settings.graph_subscription_expiration_hours == 48
        assert settings.graph_client_cache_seconds == 50 * 60
        assert settings.graph_max_connections == 20

    def test_environment_flags(self):
        settings = Settings(environment="testing", _env_file=None)

        assert settings.is_testing is True
        assert settings.is_production is False
