"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding
    openai_api_key: str = Field(default="", description="OpenAI API key used by the default provider")
    embedding_provider: str = Field(
        default="openai",
        description="Embedding backend: 'openai' or 'huggingface'",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description=(
            "Model identifier passed to the provider, e.g. 'text-embedding-3-small' "
            "for OpenAI or 'sentence-transformers/all-MiniLM-L6-v2' for HuggingFace"
        ),
    )

    # Vector store
    index_path: str = "./requirements-index"
    collection_name: str = "requirements"

    # Chunking
    chunk_size: int = 500
    chunk_overlap: int = 50

    # Indexing
    batch_size: int = 5
    embed_concurrency: int = 5
    batch_delay_seconds: float = 0.1
    preview_chars: int = 150

    # Search
    default_top_k: int = 5
    overfetch_factor: int = 3
    min_candidates: int = 50

    # CLI
    file_types: str = "pdf,docx,xlsx,xls,txt,md"
    log_level: str = "WARNING"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Process-wide instance; import `settings` wherever needed.
settings = Settings()
