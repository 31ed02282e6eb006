"""
Shared test setup: a throwaway SQLite database and the in-memory vector backend.
Environment is set before any study_retrieval module is imported.
"""

import os
import tempfile

TEST_DB_PATH = tempfile.mkstemp(suffix='.db')[1]
os.environ['DB_PATH'] = TEST_DB_PATH
os.environ['VECTOR_ENABLED'] = 'true'
os.environ['VECTOR_PROVIDER'] = 'memory'
os.environ['EMBED_PROVIDER'] = 'hash'
os.environ['CHAT_API_ENABLED'] = 'true'
os.environ['DEBUG'] = 'false'

import pytest

from study_retrieval.core import config
from study_retrieval.core.retrieval_service import RetrievalService
from study_retrieval.vector import CharacterHashEmbedding, SimpleInMemoryVectorStore


@pytest.fixture
def memory_store():
    """Fresh in-memory collection."""
    store = SimpleInMemoryVectorStore()
    store.ensure_collection()
    return store


@pytest.fixture
def retrieval_service(memory_store):
    """Retrieval service over the in-memory store and the hash embedder."""
    return RetrievalService(memory_store, CharacterHashEmbedding())


@pytest.fixture
def configured_services(memory_store):
    """Install the in-memory store as the process-wide backend."""
    config.reset_services(vector_store=memory_store, embedding_provider=CharacterHashEmbedding())
    yield config.get_retrieval_service()
    config.reset_services()
