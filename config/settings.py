"""
Work-OS Configuration Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    port: int = Field(default=8000, alias="WORKOS_PORT")
    host: str = Field(default="0.0.0.0", alias="WORKOS_HOST")

    # Chat provider (any OpenAI-compatible endpoint, e.g. an OpenClaw gateway)
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        alias="OPENAI_BASE_URL",
        description="Root URL of the chat completions API"
    )
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    openai_timeout: float = Field(default=60.0, alias="OPENAI_TIMEOUT")

    # Context budget for the task decomposition tool call
    decomposition_max_chars: int = Field(
        default=2200,
        alias="WORKOS_DECOMPOSITION_MAX_CHARS",
        description="Character budget for the decomposition RAG context"
    )

    @property
    def chat_enabled(self) -> bool:
        """Check if a chat provider is configured."""
        return bool(self.openai_api_key and self.openai_api_key.strip())


settings = Settings()
