"""Embedding generation for guide queries and index builds.

Supports a local sentence-transformers model (default, mean pooling with L2
normalisation) and OpenAI's text-embedding models.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

import numpy as np

from guide_api.core.config import Settings, is_missing_credential
from guide_api.core.errors import InitializationError

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_OPENAI_MODEL = "text-embedding-3-small"


class EmbeddingGenerator(Protocol):
    """Text to fixed-length vector."""

    provider: str

    async def load(self) -> None:
        ...

    async def embed_query(self, text: str) -> "NDArray[np.float32]":
        ...

    async def embed_documents(self, texts: list[str]) -> "NDArray[np.float32]":
        ...


def l2_normalize(vectors: "NDArray[np.float32]") -> "NDArray[np.float32]":
    """Scale each row to unit length; zero rows are left unchanged."""
    vectors = np.asarray(vectors, dtype=np.float32)
    norms = np.linalg.norm(vectors, axis=-1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


class SentenceTransformerEmbedder:
    """Local embedder built as transformer -> mean pooling -> normalize."""

    provider = "sentence-transformers"

    def __init__(self, model_name: str = DEFAULT_LOCAL_MODEL) -> None:
        self.model_name = model_name
        self._model = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def load(self) -> None:
        """Load the model and run one warm-up encode."""
        loop = asyncio.get_event_loop()
        self._model = await loop.run_in_executor(None, self._build_model)
        await self.embed_query("warm up")
        logger.info(f"Embedding model ready: {self.model_name}")

    def _build_model(self):
        from sentence_transformers import SentenceTransformer, models

        transformer = models.Transformer(self.model_name)
        pooling = models.Pooling(
            transformer.get_word_embedding_dimension(),
            pooling_mode="mean",
        )
        return SentenceTransformer(modules=[transformer, pooling, models.Normalize()])

    def _encode(self, texts: list[str]) -> "NDArray[np.float32]":
        if self._model is None:
            raise RuntimeError("Embedding model is not loaded")
        embeddings = self._model.encode(
            texts,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return np.asarray(embeddings, dtype=np.float32)

    async def embed_query(self, text: str) -> "NDArray[np.float32]":
        loop = asyncio.get_event_loop()
        embeddings = await loop.run_in_executor(None, self._encode, [text])
        return embeddings[0]

    async def embed_documents(self, texts: list[str]) -> "NDArray[np.float32]":
        if not texts:
            return np.array([], dtype=np.float32)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._encode, texts)


class OpenAIEmbedder:
    """Embedder backed by OpenAI's embeddings endpoint."""

    provider = "openai"

    def __init__(self, api_key: str, model_name: str = DEFAULT_OPENAI_MODEL) -> None:
        self.model_name = model_name
        self._api_key = api_key
        self._client = None

    async def load(self) -> None:
        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=self._api_key)
        logger.info(f"OpenAI embedder ready: {self.model_name}")

    async def embed_query(self, text: str) -> "NDArray[np.float32]":
        embeddings = await self.embed_documents([text])
        return embeddings[0]

    async def embed_documents(self, texts: list[str]) -> "NDArray[np.float32]":
        if not texts:
            return np.array([], dtype=np.float32)
        if self._client is None:
            raise RuntimeError("OpenAI client is not initialized")

        embeddings: list[list[float]] = []

        # Process in batches
        batch_size = 100
        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            response = await self._client.embeddings.create(
                model=self.model_name,
                input=batch,
            )
            embeddings.extend(item.embedding for item in response.data)

        return l2_normalize(np.array(embeddings, dtype=np.float32))


def build_embedder(settings: Settings) -> EmbeddingGenerator:
    """Create the embedder selected by settings (not yet loaded).

    Raises:
        InitializationError: If the provider needs a credential that is missing.
    """
    if settings.embedding_provider == "openai":
        if is_missing_credential(settings.openai_api_key):
            raise InitializationError("Please set OPENAI_API_KEY environment variable")
        model = settings.embedding_model
        if model == DEFAULT_LOCAL_MODEL:
            model = DEFAULT_OPENAI_MODEL
        return OpenAIEmbedder(api_key=settings.openai_api_key, model_name=model)

    return SentenceTransformerEmbedder(model_name=settings.embedding_model)
