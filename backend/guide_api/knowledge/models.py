"""Data models for similarity matches and retrieval results."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Match(BaseModel):
    """A single nearest-neighbour hit returned by the similarity index.

    ``source_tag`` encodes the originating knowledge base path as
    ``"<category> > <keyOrIndex>"``.
    """

    score: float = Field(..., description="Similarity score (higher is more similar)")
    source_tag: str = Field(default="", description="Knowledge base path of the vector")
    vector_id: Optional[str] = Field(default=None, description="Index-side vector id")


class ResolvedEntry(BaseModel):
    """A knowledge base entry located from a source tag."""

    unique_id: str
    entry: dict[str, Any]


class RetrievedResult(BaseModel):
    """A complete knowledge base entry ranked for a query."""

    unique_id: str
    score: float
    entry: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Flatten into the response shape: ``id``, entry fields, then ``score``.

        Entry fields are spread after ``id``, so an entry carrying its own
        ``id`` keeps it. ``score`` is always the match score.
        """
        return {"id": self.unique_id, **self.entry, "score": self.score}
