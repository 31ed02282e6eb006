"""
Vector layer for the study-materials index: embedding providers, record types
and vector store backends.
"""

from .index import IVectorStore, SimpleInMemoryVectorStore
from .faiss_store import FaissVectorStore
from .chroma_store import ChromaVectorStore
from .types import IndexedRecord, CandidateResult, SearchFilter, MATERIAL_TYPES
from .embeddings import (
    IEmbeddingProvider,
    CharacterHashEmbedding,
    SentenceTransformerEmbedding,
    build_embed_text,
    EMBED_DIMENSION,
    EMBED_TEXT_LIMIT
)

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'FaissVectorStore',
    'ChromaVectorStore',
    'IndexedRecord',
    'CandidateResult',
    'SearchFilter',
    'MATERIAL_TYPES',
    'IEmbeddingProvider',
    'CharacterHashEmbedding',
    'SentenceTransformerEmbedding',
    'build_embed_text',
    'EMBED_DIMENSION',
    'EMBED_TEXT_LIMIT'
]
