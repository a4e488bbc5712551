"""Unit tests for Settings."""

import pytest
from pydantic import ValidationError

from warehouse_assistant.configuration.config import Settings


@pytest.mark.unit
class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.assistant_max_tool_rounds == 6
        assert settings.assistant_session_ttl_seconds == 1800
        assert settings.sqlalchemy_url.startswith("postgresql+asyncpg://")

    def test_database_url_overrides_postgres(self):
        settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./assistant.db")
        assert settings.sqlalchemy_url == "sqlite+aiosqlite:///./assistant.db"

    def test_origins_from_comma_separated_string(self):
        settings = Settings(API_ALLOWED_ORIGINS="https://a.example, https://b.example")
        assert settings.api_allowed_origins == ["https://a.example", "https://b.example"]

    def test_round_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(assistant_max_tool_rounds=0)
