"""
Tests pour la configuration pilotee par ENVIRONMENT.
"""
from shiftcoach.core.settings import Settings


class TestEnvironmentDefaults:

    def test_development_origins(self):
        settings = Settings(ENVIRONMENT="development", _env_file=None)
        assert settings.ALLOWED_ORIGINS == ["http://localhost:3000", "http://127.0.0.1:3000"]
        assert settings.LOG_LEVEL == "INFO"

    def test_production_has_no_implicit_origin(self):
        settings = Settings(ENVIRONMENT="production", DEBUG=True, _env_file=None)
        assert settings.ALLOWED_ORIGINS == []
        assert settings.DEBUG is False
        assert settings.LOG_LEVEL == "WARNING"

    def test_explicit_origins_are_kept_as_is(self):
        settings = Settings(ALLOWED_ORIGINS=["https://app.example.com"], _env_file=None)
        assert settings.ALLOWED_ORIGINS == ["https://app.example.com"]
