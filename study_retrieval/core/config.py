"""Configuration management for the study-materials retrieval core."""

import os
from typing import List

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables from .env
load_dotenv()

# System-of-record database path
DB_PATH = os.getenv("DB_PATH", "./data/study.db")

# Vector index configuration. Collection name, width, metric and location are
# fixed per deployment; stored vectors are only comparable under the same values.
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "memory")  # memory|faiss|chroma
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformer
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-MiniLM-L6-v2")
VECTOR_COLLECTION = os.getenv("VECTOR_COLLECTION", "study-materials")
VECTOR_DIMENSION = int(os.getenv("VECTOR_DIMENSION", "384"))
VECTOR_METRIC = os.getenv("VECTOR_METRIC", "cosine")
VECTOR_CLOUD = os.getenv("VECTOR_CLOUD", "aws")
VECTOR_REGION = os.getenv("VECTOR_REGION", "us-east-1")
VECTOR_API_KEY = os.getenv("VECTOR_API_KEY")  # Required for chroma
VECTOR_HOST = os.getenv("VECTOR_HOST", "localhost")
VECTOR_PORT = int(os.getenv("VECTOR_PORT", "8000"))
FAISS_INDEX_DIR = os.getenv("FAISS_INDEX_DIR", "./data/vector_index")

# Chat completion
CHAT_API_ENABLED = os.getenv("CHAT_API_ENABLED", "true").lower() == "true"
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "1024"))

VERSION = "1.0.0"

_vector_store = None
_embedding_provider = None
_retrieval_service = None


def are_vector_features_enabled():
    """Check if vector features are enabled."""
    return os.getenv("VECTOR_ENABLED", "true").lower() == "true"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def validate_vector_config() -> List[str]:
    """Validate vector configuration and return any issues."""
    issues = []

    if VECTOR_PROVIDER not in ["memory", "faiss", "chroma"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if EMBED_PROVIDER not in ["hash", "sentence_transformer"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if VECTOR_PROVIDER == "chroma" and not (VECTOR_API_KEY or "").strip():
        issues.append("VECTOR_API_KEY is required when VECTOR_PROVIDER=chroma")

    if VECTOR_DIMENSION != 384:
        issues.append(f"VECTOR_DIMENSION must be 384, got {VECTOR_DIMENSION}")

    if VECTOR_METRIC != "cosine":
        issues.append(f"VECTOR_METRIC must be cosine, got {VECTOR_METRIC}")

    if not VECTOR_COLLECTION.strip():
        issues.append("VECTOR_COLLECTION cannot be empty")

    return issues


def get_embedding_provider():
    """Get configured embedding provider. Returns None if vector features disabled."""
    global _embedding_provider
    if not are_vector_features_enabled():
        return None

    if _embedding_provider is None:
        if EMBED_PROVIDER == "sentence_transformer":
            from ..vector.embeddings import SentenceTransformerEmbedding
            _embedding_provider = SentenceTransformerEmbedding(EMBED_MODEL_NAME)
        else:
            from ..vector.embeddings import CharacterHashEmbedding
            _embedding_provider = CharacterHashEmbedding(VECTOR_DIMENSION)
    return _embedding_provider


def get_vector_store():
    """Get the configured vector store handle. Returns None if vector features disabled.

    Raises:
        ConfigurationError: unknown provider or missing backend credential
    """
    global _vector_store
    if not are_vector_features_enabled():
        return None

    if _vector_store is None:
        issues = validate_vector_config()
        if issues:
            raise ConfigurationError("; ".join(issues))

        if VECTOR_PROVIDER == "faiss":
            from ..vector.faiss_store import FaissVectorStore
            _vector_store = FaissVectorStore(
                index_dir=FAISS_INDEX_DIR,
                collection_name=VECTOR_COLLECTION,
                dimension=VECTOR_DIMENSION,
                metric=VECTOR_METRIC
            )
        elif VECTOR_PROVIDER == "chroma":
            from ..vector.chroma_store import ChromaVectorStore
            _vector_store = ChromaVectorStore(
                api_key=VECTOR_API_KEY,
                host=VECTOR_HOST,
                port=VECTOR_PORT,
                collection_name=VECTOR_COLLECTION,
                dimension=VECTOR_DIMENSION,
                metric=VECTOR_METRIC,
                cloud=VECTOR_CLOUD,
                region=VECTOR_REGION
            )
        else:
            from ..vector.index import SimpleInMemoryVectorStore
            _vector_store = SimpleInMemoryVectorStore(
                collection_name=VECTOR_COLLECTION,
                dimension=VECTOR_DIMENSION,
                metric=VECTOR_METRIC
            )
    return _vector_store


def initialize_vector_store():
    """Build the vector store and provision its collection. Errors propagate."""
    from ..util.logging import logger

    issues = validate_vector_config()
    if issues:
        logger.log_config_issue(issues)
        raise ConfigurationError("; ".join(issues))

    store = get_vector_store()
    if store is None:
        raise ConfigurationError("Vector features disabled. Set VECTOR_ENABLED=true")
    store.ensure_collection(VECTOR_COLLECTION, VECTOR_DIMENSION, VECTOR_METRIC)
    return store


def get_retrieval_service():
    """Get the process-wide RetrievalService. Returns None if vector features disabled."""
    global _retrieval_service
    if not are_vector_features_enabled():
        return None

    if _retrieval_service is None:
        from .retrieval_service import RetrievalService
        _retrieval_service = RetrievalService(
            vector_store=get_vector_store(),
            embedding_provider=get_embedding_provider()
        )
    return _retrieval_service


def reset_services(vector_store=None, embedding_provider=None) -> None:
    """Clear cached handles, optionally installing replacements. Useful for tests."""
    global _vector_store, _embedding_provider, _retrieval_service
    _vector_store = vector_store
    _embedding_provider = embedding_provider
    _retrieval_service = None


def get_chat_options() -> dict:
    """Completion options for the chat model."""
    return {
        'temperature': CHAT_TEMPERATURE,
        'num_predict': CHAT_MAX_TOKENS
    }


def get_provisioning_location() -> str:
    """Cloud/region label used when the collection is first created."""
    return f"{VECTOR_CLOUD}/{VECTOR_REGION}"
