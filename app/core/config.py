"""Application configuration."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    APP_NAME: str = Field(default="DeepSeek Chat", env="APP_NAME")
    DOCS_PORT: int = Field(default=8000, env="DOCS_PORT")

    # Upstream chat-completion API
    DEEPSEEK_API_KEY: Optional[str] = Field(default=None, env="DEEPSEEK_API_KEY")
    DEEPSEEK_API_URL: str = Field(
        default="https://ark.cn-beijing.volces.com/api/v3/chat/completions",
        env="DEEPSEEK_API_URL",
    )
    DEEPSEEK_MODEL: str = Field(default="deepseek-r1-250120", env="DEEPSEEK_MODEL")
    DEEPSEEK_SYSTEM_PROMPT: str = Field(
        default="你是人工智能助手.", env="DEEPSEEK_SYSTEM_PROMPT"
    )
    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=300.0, env="UPSTREAM_TIMEOUT_SECONDS", gt=0
    )

    # Identity provider (Firebase Identity Toolkit)
    FIREBASE_API_KEY: Optional[str] = Field(default=None, env="FIREBASE_API_KEY")
    IDENTITY_API_URL: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
        env="IDENTITY_API_URL",
    )

    # PostgreSQL settings
    POSTGRES_USER: str = Field(default="postgres", env="POSTGRES_USER")
    POSTGRES_PASSWORD: str = Field(default="postgres", env="POSTGRES_PASSWORD")
    POSTGRES_HOST: str = Field(default="localhost", env="POSTGRES_HOST")
    POSTGRES_PORT: int = Field(default=5432, env="POSTGRES_PORT")
    POSTGRES_DB: str = Field(default="deepseek_chat", env="POSTGRES_DB")
    DATABASE_URL_OVERRIDE: Optional[str] = Field(
        default=None, env="DATABASE_URL_OVERRIDE"
    )

    @property
    def DATABASE_URL(self) -> str:
        """Construct DATABASE_URL from individual PostgreSQL parameters."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Conversation persistence settings
    CHAT_PERSIST_INTERVAL_SECONDS: float = Field(
        default=0.0, env="CHAT_PERSIST_INTERVAL_SECONDS", ge=0, le=60
    )  # 0 writes on every streamed delta
    CHAT_HISTORY_LIMIT: int = Field(
        default=200, env="CHAT_HISTORY_LIMIT", ge=10, le=1000
    )  # Max messages returned on history read-back

    # Authentication settings
    AUTH_TOKEN: str = Field(default="", env="AUTH_TOKEN")

    # CORS settings
    CORS_ORIGINS: list[str] = Field(default=["*"], env="CORS_ORIGINS")

    # Environment
    ENVIRONMENT: str = Field(default="development", env="ENVIRONMENT")
    LOG_LEVEL: str = Field(default="DEBUG", env="LOG_LEVEL")
    DEBUG: bool = Field(default=True, env="DEBUG")

    class Config:
        env_file = ".env"


settings = Settings()
