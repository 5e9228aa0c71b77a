"""Application configuration settings."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Placeholder value shipped in example .env files
_PLACEHOLDER_API_KEY = "YOUR_API_KEY"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Z3 Guide Search"
    app_version: str = "0.1.0"
    environment: Literal["development", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("environment", "node_env"),
    )
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # CORS
    production_origins: list[str] = ["https://exp.host", "https://expo.dev"]

    # Knowledge base
    data_path: Path = Path("./data.json")
    data_root_key: str = "bmw_z3_guide"

    # Embeddings
    embedding_provider: Literal["sentence-transformers", "openai"] = "sentence-transformers"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    openai_api_key: Optional[str] = None

    # Similarity index
    vector_backend: Literal["pinecone", "faiss"] = "pinecone"
    pinecone_api_key: Optional[str] = None
    pinecone_index_name: str = "bmw-z3-guide"
    index_dir: Path = Path("./index")

    # Search
    search_top_k: int = Field(default=15, ge=1)  # over-fetch, duplicates collapse
    result_limit: int = Field(default=5, ge=1)

    # Observability
    metrics_backend: str = "inmemory"  # "inmemory" | "prometheus"
    otel_enabled: bool = False
    otel_service_name: str = "guide-search-api"
    otel_exporter_otlp_endpoint: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def cors_origins(self) -> list[str]:
        """Origins allowed by the CORS middleware for the current environment."""
        if self.is_production:
            return list(self.production_origins)
        return ["*"]


def is_missing_credential(value: str | None) -> bool:
    """Return True when an API key is unset, blank or still the placeholder."""
    return not value or not value.strip() or value.strip() == _PLACEHOLDER_API_KEY


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Warns when the selected similarity backend has no credential configured.
    """
    settings = Settings()

    if settings.vector_backend == "pinecone" and is_missing_credential(
        settings.pinecone_api_key
    ):
        logger.warning(
            "PINECONE_API_KEY is not set. Search will stay unavailable until it is configured."
        )

    return settings
