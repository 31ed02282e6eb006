"""
Tests for the collection provisioning and index rebuild scripts.
"""

import uuid

import pytest
from unittest.mock import MagicMock, patch

from scripts.init_collection import main as init_main
from scripts.rebuild_index import rebuild
from study_retrieval.core.dao import create_material, create_subject
from study_retrieval.core.exceptions import ConfigurationError


def test_init_collection_success(capsys):
    store = MagicMock()
    store.count.return_value = 0
    with patch('scripts.init_collection.initialize_vector_store', return_value=store):
        assert init_main() == 0

    output = capsys.readouterr().out
    assert "study-materials" in output
    assert "384" in output
    assert "aws/us-east-1" in output


def test_init_collection_config_error(capsys):
    with patch('scripts.init_collection.initialize_vector_store',
               side_effect=ConfigurationError("VECTOR_API_KEY is required when VECTOR_PROVIDER=chroma")):
        assert init_main() == 1

    output = capsys.readouterr().out
    assert "VECTOR_API_KEY" in output
    assert "Troubleshooting" in output


def test_init_collection_backend_error():
    with patch('scripts.init_collection.initialize_vector_store', side_effect=RuntimeError("unreachable")):
        assert init_main() == 1


def test_rebuild_reindexes_all_materials(retrieval_service):
    subject = create_subject("History")
    class_id = f"class-{uuid.uuid4().hex[:8]}"
    unindexed = MagicMock(index_material=MagicMock(return_value=False))
    material = create_material("Industrial Revolution", "Steam and factories", "James Watt improved the engine",
                               "pdf", class_id, subject.id, retrieval_service=unindexed)
    retrieval_service.index_material("stale", "Old", "", "", {"classId": "x", "subjectId": "y", "type": "pdf"})

    indexed = rebuild(retrieval_service)

    assert indexed >= 1
    assert retrieval_service.vector_store.get("stale") is None
    record = retrieval_service.vector_store.get(material.id)
    assert record is not None
    assert record.metadata["classId"] == class_id


def test_rebuild_counts_failures():
    service = MagicMock()
    service.index_material.return_value = False
    with patch('scripts.rebuild_index.list_materials', return_value=[MagicMock(), MagicMock()]):
        assert rebuild(service) == 0
    service.vector_store.clear.assert_called_once()
