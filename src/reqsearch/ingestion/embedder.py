"""Embedding provider shared by indexing and querying."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from reqsearch.config import Settings, settings
from reqsearch.errors import ConfigurationError, EmbeddingError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Trim *text* and collapse internal whitespace runs to single spaces."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def get_embedding_function(config: Settings = settings) -> Embeddings:
    """Return the configured LangChain embedding model.

    ``openai`` (the default) uses ``OpenAIEmbeddings``; ``huggingface``
    loads a local sentence-transformer through ``HuggingFaceEmbeddings``.
    """
    provider = config.embedding_provider.lower()
    if provider == "openai":
        if not config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is required")
        from langchain_openai import OpenAIEmbeddings

        return OpenAIEmbeddings(model=config.embedding_model, api_key=config.openai_api_key)
    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=config.embedding_model)
    raise ConfigurationError(f"Unsupported embedding_provider: {config.embedding_provider!r}")


class EmbeddingProvider:
    """Turns text into a fixed-dimension vector.

    The same normalisation is applied to chunks and queries so identical
    content always reaches the model in identical form.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.
    """

    def __init__(self, embeddings: Embeddings) -> None:
        self._embeddings = embeddings

    async def embed(self, text: str) -> list[float]:
        """Embed *text*.

        Raises
        ------
        EmbeddingError
            On any provider failure.
        """
        normalized = normalize_text(text)
        try:
            vector = await self._embeddings.aembed_query(normalized)
        except Exception as exc:
            logger.error("Embedding request failed: %s", exc)
            raise EmbeddingError(f"Error generating embedding: {exc}") from exc
        return list(vector)
