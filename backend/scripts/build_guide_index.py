#!/usr/bin/env python3
"""Build the guide similarity index from the knowledge base.

This script loads the guide JSON, turns every entry into a text record tagged
with its ``"<category> > <keyOrIndex>"`` path, generates embeddings, and
either writes a local FAISS index or upserts the vectors to Pinecone.

Usage:
    python scripts/build_guide_index.py

Environment variables:
    DATA_PATH: Guide JSON file (default ./data.json)
    VECTOR_BACKEND: "pinecone" (default) or "faiss"
    PINECONE_API_KEY: Required for the Pinecone backend
    INDEX_DIR: Output directory for the FAISS backend (default ./index)
    EMBEDDING_PROVIDER: "sentence-transformers" (default) or "openai"
"""

import asyncio
import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))


async def main() -> None:
    """Build the guide index."""
    from guide_api.core.config import get_settings, is_missing_credential
    from guide_api.core.errors import InitializationError
    from guide_api.knowledge.base import entry_text, iter_entry_records, load_knowledge_base
    from guide_api.knowledge.embeddings import build_embedder
    from guide_api.knowledge.index import FaissIndex, PineconeIndex

    settings = get_settings()

    if settings.vector_backend == "pinecone" and is_missing_credential(
        settings.pinecone_api_key
    ):
        print("Error: PINECONE_API_KEY environment variable is required")
        sys.exit(1)

    print(f"Loading guide from: {settings.data_path}")
    try:
        knowledge_base = load_knowledge_base(settings.data_path, settings.data_root_key)
        embedder = build_embedder(settings)
    except InitializationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    records = list(iter_entry_records(knowledge_base))
    if not records:
        print("No guide entries found.")
        sys.exit(1)

    print(f"Loaded {len(records)} entries from {len(knowledge_base)} categories")

    # Show entry summary
    print("\nEntries per category:")
    for name, container in knowledge_base.categories.items():
        print(f"  {name}: {len(container)} entries")

    # Generate embeddings
    print(f"\nGenerating embeddings with {embedder.provider} ({settings.embedding_model})...")
    texts = [entry_text(source_tag, entry) for source_tag, entry in records]

    try:
        await embedder.load()
        embeddings = await embedder.embed_documents(texts)
    except Exception as e:
        print(f"Error generating embeddings: {e}")
        sys.exit(1)

    print(f"Generated embeddings: shape={embeddings.shape}")

    index_records = [
        {"id": f"guide-{i:05d}", "metadata": {"source": source_tag, "text": text}}
        for i, ((source_tag, _), text) in enumerate(zip(records, texts))
    ]

    if settings.vector_backend == "faiss":
        faiss_index = FaissIndex.from_vectors(embeddings.copy(), index_records)
        faiss_index.save(settings.index_dir, embeddings)
        print(f"Saved FAISS index to: {settings.index_dir}")
    else:
        pinecone_index = PineconeIndex(settings.pinecone_api_key, settings.pinecone_index_name)
        upserted = pinecone_index.upsert(
            [
                {"id": record["id"], "values": vector.tolist(), "metadata": record["metadata"]}
                for record, vector in zip(index_records, embeddings)
            ]
        )
        print(f"Upserted {upserted} vectors to Pinecone index: {settings.pinecone_index_name}")

    print("\nIndex built successfully!")
    print(f"Total vectors: {len(index_records)}")
    print(f"Embedding dimension: {embeddings.shape[1]}")


if __name__ == "__main__":
    asyncio.run(main())
