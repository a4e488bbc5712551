"""Configuration management for the warehouse assistant."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # API Settings
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    api_allowed_origins: str | list[str] = Field(default=["*"], alias="API_ALLOWED_ORIGINS")
    api_key_prefix: str = Field(default="wa_sk_", alias="API_KEY_PREFIX")

    # Database Settings
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="warehouse", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="password", alias="POSTGRES_PASSWORD")

    # Full SQLAlchemy URL override (e.g. sqlite+aiosqlite for local runs)
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    postgres_pool_size: int = Field(default=10, alias="POSTGRES_POOL_SIZE")
    postgres_max_overflow: int = Field(default=20, alias="POSTGRES_MAX_OVERFLOW")
    postgres_pool_recycle: int = Field(default=3600, alias="POSTGRES_POOL_RECYCLE")
    postgres_pool_pre_ping: bool = Field(default=True, alias="POSTGRES_POOL_PRE_PING")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", alias="LOG_FORMAT"
    )

    # LLM Settings
    llm_model: str = Field(default="gemini/gemini-2.0-flash", alias="LLM_MODEL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_api_base: str | None = Field(default=None, alias="LLM_API_BASE")
    llm_temperature: float = Field(default=0.2, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=2048, alias="LLM_MAX_TOKENS")
    llm_timeout: int = Field(default=60, alias="LLM_TIMEOUT")  # seconds
    llm_max_retries: int = Field(default=1, alias="LLM_MAX_RETRIES")

    # Assistant orchestration
    assistant_max_tool_rounds: int = Field(default=6, alias="ASSISTANT_MAX_TOOL_ROUNDS")
    assistant_max_tool_calls_per_round: int = Field(
        default=8, alias="ASSISTANT_MAX_TOOL_CALLS_PER_ROUND"
    )
    assistant_session_ttl_seconds: int = Field(
        default=1800, alias="ASSISTANT_SESSION_TTL_SECONDS"
    )
    assistant_history_window: int = Field(default=10, alias="ASSISTANT_HISTORY_WINDOW")
    assistant_disambiguation_max_candidates: int = Field(
        default=10, alias="ASSISTANT_DISAMBIGUATION_MAX_CANDIDATES"
    )
    assistant_search_limit: int = Field(default=50, alias="ASSISTANT_SEARCH_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("api_allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("assistant_max_tool_rounds", "assistant_history_window")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def postgres_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        """URL handed to ``create_async_engine``."""
        return self.database_url or self.postgres_url


@lru_cache
def get_settings() -> Settings:
    return Settings()
