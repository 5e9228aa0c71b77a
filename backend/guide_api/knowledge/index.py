"""Similarity index clients.

Two backends answer nearest-neighbour queries over guide embeddings:

* ``PineconeIndex`` - the hosted index used in deployments.
* ``FaissIndex`` - an in-memory FAISS index loaded from files written by
  ``scripts/build_guide_index.py``, for local development without a
  Pinecone account.

Both return ``Match`` objects ordered by descending score, each carrying the
``source`` tag stored with the vector.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from guide_api.core.config import Settings, is_missing_credential
from guide_api.core.errors import InitializationError
from guide_api.knowledge.models import Match

if TYPE_CHECKING:
    import faiss
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

VECTORS_FILENAME = "vectors.npy"
RECORDS_FILENAME = "records.json"


class SimilarityIndex(Protocol):
    """Nearest-neighbour lookup over stored vectors."""

    backend: str

    async def query(self, vector: "NDArray[np.float32]", top_k: int) -> list[Match]:
        ...


def match_from_metadata(vector_id: Any, score: float, metadata: Any) -> Match:
    """Build a Match, tolerating vectors stored without a ``source`` tag."""
    source = metadata.get("source") if isinstance(metadata, dict) else None
    return Match(
        score=float(score),
        source_tag=source if isinstance(source, str) else "",
        vector_id=str(vector_id) if vector_id is not None else None,
    )


class PineconeIndex:
    """Client for a hosted Pinecone index."""

    backend = "pinecone"

    def __init__(self, api_key: str, index_name: str) -> None:
        from pinecone import Pinecone

        self.index_name = index_name
        self._client = Pinecone(api_key=api_key)
        self._index = self._client.Index(index_name)

    def _query(self, vector: list[float], top_k: int) -> list[Match]:
        response = self._index.query(
            vector=vector,
            top_k=top_k,
            include_metadata=True,
        )
        return [
            match_from_metadata(m.id, m.score, m.metadata)
            for m in response.matches
        ]

    async def query(self, vector: "NDArray[np.float32]", top_k: int) -> list[Match]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None, self._query, np.asarray(vector, dtype=np.float32).tolist(), top_k
        )

    def upsert(self, records: list[dict[str, Any]], batch_size: int = 100) -> int:
        """Upsert ``{"id", "values", "metadata"}`` records in batches."""
        for i in range(0, len(records), batch_size):
            self._index.upsert(vectors=records[i : i + batch_size])
        return len(records)


class FaissIndex:
    """Inner-product FAISS index over L2-normalised vectors (cosine similarity)."""

    backend = "faiss"

    def __init__(self, index: "faiss.IndexFlatIP", records: list[dict[str, Any]]) -> None:
        self._index = index
        self.records = records

    @property
    def size(self) -> int:
        return len(self.records)

    @classmethod
    def from_vectors(
        cls,
        vectors: "NDArray[np.float32]",
        records: list[dict[str, Any]],
    ) -> "FaissIndex":
        import faiss

        vectors = np.ascontiguousarray(vectors, dtype=np.float32)
        if vectors.ndim != 2 or len(records) != vectors.shape[0]:
            raise ValueError(
                f"Record count ({len(records)}) does not match "
                f"vector count ({vectors.shape[0] if vectors.ndim else 0})"
            )

        index = faiss.IndexFlatIP(vectors.shape[1])
        faiss.normalize_L2(vectors)
        index.add(vectors)
        return cls(index, records)

    @classmethod
    def load(cls, index_dir: Path) -> "FaissIndex":
        """Load an index written by :meth:`save`.

        Raises:
            InitializationError: If the index files are missing or inconsistent.
        """
        vectors_path = index_dir / VECTORS_FILENAME
        records_path = index_dir / RECORDS_FILENAME
        if not vectors_path.exists() or not records_path.exists():
            raise InitializationError(
                f"Guide index not found at {index_dir}. Run build_guide_index.py to create it."
            )

        try:
            with open(records_path, encoding="utf-8") as f:
                records = json.load(f)
            vectors: NDArray[np.float32] = np.load(vectors_path)
        except (OSError, ValueError) as e:
            raise InitializationError(f"Failed to read guide index at {index_dir}: {e}") from e
        if not isinstance(records, list):
            raise InitializationError(f"{RECORDS_FILENAME} must hold a list of records")

        try:
            faiss_index = cls.from_vectors(vectors, records)
        except ValueError as e:
            raise InitializationError(str(e)) from e

        logger.info(
            f"FAISS guide index loaded: {faiss_index.size} vectors, "
            f"{vectors.shape[1]}-dim embeddings"
        )
        return faiss_index

    def save(self, index_dir: Path, vectors: "NDArray[np.float32]") -> None:
        index_dir.mkdir(parents=True, exist_ok=True)
        np.save(index_dir / VECTORS_FILENAME, np.asarray(vectors, dtype=np.float32))
        with open(index_dir / RECORDS_FILENAME, "w", encoding="utf-8") as f:
            json.dump(self.records, f, ensure_ascii=False, indent=2)

    def _query(self, vector: "NDArray[np.float32]", top_k: int) -> list[Match]:
        import faiss

        query = np.asarray(vector, dtype=np.float32).reshape(1, -1).copy()
        faiss.normalize_L2(query)
        scores, indices = self._index.search(query, min(top_k, self.size))

        matches: list[Match] = []
        for score, idx in zip(scores[0], indices[0]):
            if idx < 0:  # FAISS returns -1 for missing results
                continue
            record = self.records[idx]
            matches.append(match_from_metadata(record.get("id"), score, record.get("metadata")))
        return matches

    async def query(self, vector: "NDArray[np.float32]", top_k: int) -> list[Match]:
        if self.size == 0:
            return []
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._query, vector, top_k)


def build_similarity_index(settings: Settings) -> SimilarityIndex:
    """Create the similarity index client selected by settings.

    Raises:
        InitializationError: If credentials or index files are missing.
    """
    if settings.vector_backend == "faiss":
        return FaissIndex.load(settings.index_dir)

    if is_missing_credential(settings.pinecone_api_key):
        raise InitializationError("Please set PINECONE_API_KEY environment variable")

    try:
        return PineconeIndex(settings.pinecone_api_key, settings.pinecone_index_name)
    except Exception as e:
        raise InitializationError(f"Failed to initialize Pinecone client: {e}") from e
