"""
Tests for configuration validation and service factories.
"""

import pytest
from unittest.mock import patch

from study_retrieval.core import config
from study_retrieval.core.exceptions import ConfigurationError
from study_retrieval.vector import CharacterHashEmbedding, SimpleInMemoryVectorStore


@pytest.fixture(autouse=True)
def fresh_services():
    config.reset_services()
    yield
    config.reset_services()


def test_default_config_is_valid():
    assert config.validate_vector_config() == []


def test_invalid_provider_reported():
    with patch('study_retrieval.core.config.VECTOR_PROVIDER', 'pinecone'):
        issues = config.validate_vector_config()
    assert any("VECTOR_PROVIDER" in issue for issue in issues)


def test_chroma_requires_api_key():
    with patch('study_retrieval.core.config.VECTOR_PROVIDER', 'chroma'), \
         patch('study_retrieval.core.config.VECTOR_API_KEY', None):
        issues = config.validate_vector_config()
    assert issues == ["VECTOR_API_KEY is required when VECTOR_PROVIDER=chroma"]


def test_fixed_dimension_and_metric():
    with patch('study_retrieval.core.config.VECTOR_DIMENSION', 768), \
         patch('study_retrieval.core.config.VECTOR_METRIC', 'dotproduct'):
        issues = config.validate_vector_config()
    assert len(issues) == 2


def test_get_vector_store_raises_on_bad_config():
    with patch('study_retrieval.core.config.VECTOR_PROVIDER', 'chroma'), \
         patch('study_retrieval.core.config.VECTOR_API_KEY', ''):
        with pytest.raises(ConfigurationError):
            config.get_vector_store()


def test_initialize_vector_store_raises_on_bad_config():
    with patch('study_retrieval.core.config.EMBED_PROVIDER', 'openai'):
        with pytest.raises(ConfigurationError):
            config.initialize_vector_store()


def test_initialize_vector_store_provisions_collection():
    store = config.initialize_vector_store()
    assert isinstance(store, SimpleInMemoryVectorStore)
    assert config.VECTOR_COLLECTION in store.list_collections()


def test_factories_are_cached():
    assert config.get_vector_store() is config.get_vector_store()
    assert isinstance(config.get_embedding_provider(), CharacterHashEmbedding)
    service = config.get_retrieval_service()
    assert service is config.get_retrieval_service()
    assert service.vector_store is config.get_vector_store()


def test_vector_features_disabled(monkeypatch):
    monkeypatch.setenv("VECTOR_ENABLED", "false")
    assert config.get_vector_store() is None
    assert config.get_embedding_provider() is None
    assert config.get_retrieval_service() is None


def test_chat_options_and_location():
    assert config.get_chat_options() == {
        'temperature': config.CHAT_TEMPERATURE,
        'num_predict': config.CHAT_MAX_TOKENS
    }
    assert config.get_provisioning_location() == "aws/us-east-1"
