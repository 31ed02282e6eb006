"""
Tests for the character hash embedder and embed-text assembly.
"""

import numpy as np
import pytest
from unittest.mock import MagicMock

from study_retrieval.vector.embeddings import (
    CharacterHashEmbedding,
    SentenceTransformerEmbedding,
    build_embed_text,
    EMBED_DIMENSION,
    EMBED_TEXT_LIMIT
)


@pytest.fixture
def embedder():
    return CharacterHashEmbedding()


def test_embedding_is_deterministic(embedder):
    text = "Photosynthesis converts light energy into chemical energy"
    assert embedder.embed_text(text) == embedder.embed_text(text)


def test_embedding_dimension(embedder):
    for text in ["", "a", "hello world", "x" * 10000]:
        assert len(embedder.embed_text(text)) == EMBED_DIMENSION
    assert embedder.get_dimension() == 384


def test_embedding_unit_norm(embedder):
    vector = embedder.embed_text("The quick brown fox jumps over the lazy dog")
    assert abs(np.linalg.norm(vector) - 1.0) < 1e-9


@pytest.mark.parametrize("text", ["", "   ", "\n\t  "])
def test_blank_text_yields_zero_vector(embedder, text):
    assert embedder.embed_text(text) == [0.0] * EMBED_DIMENSION


def test_single_character_bucket(embedder):
    # 'a' is code 97 at token 0, position 0
    vector = embedder.embed_text("a")
    assert vector[97] == 1.0
    assert sum(1 for v in vector if v != 0) == 1


def test_token_and_position_multipliers(embedder):
    # 'a' -> 97 * 1 * 1, 'b' -> 98 * 1 * 2 = 196
    vector = embedder.embed_text("ab")
    assert vector[97] == pytest.approx(1 / np.sqrt(2))
    assert vector[196] == pytest.approx(1 / np.sqrt(2))

    # second token doubles the multiplier: 97 * 2 * 1 = 194
    vector = embedder.embed_text("a a")
    assert vector[97] == pytest.approx(1 / np.sqrt(2))
    assert vector[194] == pytest.approx(1 / np.sqrt(2))


def test_embedding_is_case_and_whitespace_insensitive(embedder):
    assert embedder.embed_text("  Hello   WORLD ") == embedder.embed_text("hello world")


def test_astral_characters_use_utf16_code_units(embedder):
    # U+1F600 is the surrogate pair 0xD83D 0xDE00
    vector = embedder.embed_text("\U0001F600")
    assert vector[0xD83D % 384] == pytest.approx(1 / np.sqrt(2))
    assert vector[(0xDE00 * 2) % 384] == pytest.approx(1 / np.sqrt(2))


def test_build_embed_text_joins_with_spaces():
    assert build_embed_text("Title", "Desc", "Body") == "Title Desc Body"


def test_build_embed_text_truncates():
    content = "y" * 6000
    embed_text = build_embed_text("T", "D", content)
    assert len(embed_text) == EMBED_TEXT_LIMIT
    assert embed_text.startswith("T D y")


def test_text_beyond_limit_does_not_change_vector(embedder):
    base = "x" * 4990
    first = embedder.embed_text(build_embed_text("Title", "Desc", base + " alpha beta gamma"))
    second = embedder.embed_text(build_embed_text("Title", "Desc", base + " alpha delta omega"))
    assert first == second


def test_sentence_transformer_normalizes():
    provider = SentenceTransformerEmbedding("all-MiniLM-L6-v2")
    provider._model = MagicMock()
    provider._model.encode.return_value = np.ones(384, dtype=np.float32) / np.sqrt(384)
    provider._model.get_sentence_embedding_dimension.return_value = 384

    vector = provider.embed_text("hello")

    assert len(vector) == 384
    assert provider.get_dimension() == 384
    _, kwargs = provider._model.encode.call_args
    assert kwargs["normalize_embeddings"] is True
