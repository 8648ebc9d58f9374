"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Optional env vars:
        POSTGRES_PORT (5432), LOG_LEVEL (INFO),
        EMBEDDING_PROVIDER (ollama), OLLAMA_URL, OLLAMA_EMBEDDING_MODEL,
        OPENAI_API_KEY, OPENAI_EMBEDDING_MODEL, EMBEDDING_DIMENSIONS,
        EMBEDDING_MAX_CHARS (8000), EMBEDDING_TIMEOUT (10.0),
        GRAPH_MAX_EDGES (500)
    """

    PROJECT_NAME: str = "NeuralMD"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Logging
    LOG_LEVEL: str = "INFO"

    # Embeddings: "ollama", "openai" or "none"
    EMBEDDING_PROVIDER: str = "ollama"
    OLLAMA_URL: str = "http://localhost:11434"
    OLLAMA_EMBEDDING_MODEL: str = "nomic-embed-text"
    OPENAI_API_KEY: str | None = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    # Overrides the known-model dimension table (needed for unlisted models)
    EMBEDDING_DIMENSIONS: int | None = Field(default=None, gt=0)
    EMBEDDING_MAX_CHARS: int = Field(default=8000, gt=0)
    EMBEDDING_TIMEOUT: float = Field(default=10.0, gt=0)

    # Graph
    GRAPH_MAX_EDGES: int = Field(default=500, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()  # type: ignore[call-arg]
