"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Cozy Connections configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    ai_model: str = Field(default="haiku")
    ai_max_tokens: int = Field(default=1000)

    # Database
    database_path: Path = Field(default=Path("data/cozy.db"))

    # Turso (hosted libSQL); when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Blob storage (avatars, memory images)
    storage_dir: Path = Field(default=Path("data/storage"))
    public_base_url: str = Field(default="http://localhost:8080")

    # HTTP API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    cors_allow_origins: str = Field(default="*")

    # Auth
    session_ttl_hours: int = Field(default=24 * 7)

    # Matching
    potential_match_limit: int = Field(default=10)
    favorite_match_limit: int = Field(default=5)

    # Questionnaire: False means one stored answer completes it
    questionnaire_requires_all_answers: bool = Field(default=False)

    # Assistant conversations
    assistant_window_size: int = Field(default=30)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ALLOW_ORIGINS into a list of origins."""
        if not self.cors_allow_origins.strip():
            return []
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


settings = Settings()
