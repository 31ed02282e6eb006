"""
Tests for the HTTP surface.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, patch

from study_retrieval.api.main import app
from study_retrieval.core.chat_service import ChatService
from study_retrieval.core.dao import create_user, create_subject

client = TestClient(app)


def unique(prefix):
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def classroom(configured_services):
    """Two classes with one material each, a teacher and a student in class A."""
    class_a, class_b = unique("class-a"), unique("class-b")
    teacher = create_user("Mr. Okafor", f"{unique('okafor')}@example.com", role="teacher")
    student = create_user("Lena", f"{unique('lena')}@example.com", role="student", class_id=class_a)
    subject = create_subject("Mathematics", color="#f59e0b")

    headers = {"X-User-Id": teacher.id}
    for class_id in (class_a, class_b):
        response = client.post("/materials", headers=headers, json={
            "title": "Quadratic Equations",
            "description": "Solving by factoring",
            "content": "x^2 - 5x + 6 = 0 factors to (x - 2)(x - 3)",
            "type": "pdf",
            "classId": class_id,
            "subjectId": subject.id
        })
        assert response.status_code == 201

    return {"class_a": class_a, "class_b": class_b, "teacher": teacher, "student": student, "subject": subject}


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["db_health"] is True
    assert data["collection"] == "study-materials"


def test_search_requires_user():
    response = client.post("/materials/search", json={"query": "equations"})
    assert response.status_code == 401

    response = client.post("/materials/search", headers={"X-User-Id": "nobody"}, json={"query": "equations"})
    assert response.status_code == 401


def test_search_requires_query(classroom):
    headers = {"X-User-Id": classroom["teacher"].id}
    assert client.post("/materials/search", headers=headers, json={}).status_code == 400
    assert client.post("/materials/search", headers=headers, json={"query": "   "}).status_code == 400
    assert client.post("/materials/search", headers=headers, json={"query": 123}).status_code == 400


def test_search_rejects_unknown_type(classroom):
    headers = {"X-User-Id": classroom["teacher"].id}
    response = client.post("/materials/search", headers=headers, json={"query": "equations", "type": "audio"})
    assert response.status_code == 400


def test_student_search_is_scoped_to_own_class(classroom):
    headers = {"X-User-Id": classroom["student"].id}
    response = client.post("/materials/search", headers=headers, json={
        "query": "quadratic equations factoring",
        "classId": classroom["class_b"]
    })

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "quadratic equations factoring"
    assert data["count"] == 1
    result = data["results"][0]
    assert result["classId"] == classroom["class_a"]
    assert result["subjectId"]["name"] == "Mathematics"
    assert result["uploadedBy"]["name"] == "Mr. Okafor"
    assert result["relevanceScore"] > 0


def test_teacher_search_can_pick_class(classroom):
    headers = {"X-User-Id": classroom["teacher"].id}
    response = client.post("/materials/search", headers=headers, json={
        "query": "quadratic equations factoring",
        "classId": classroom["class_b"]
    })

    data = response.json()
    assert data["count"] == 1
    assert data["results"][0]["classId"] == classroom["class_b"]


def test_results_are_ordered_by_relevance(classroom):
    headers = {"X-User-Id": classroom["teacher"].id}
    response = client.post("/materials/search", headers=headers, json={"query": "quadratic equations", "limit": 50})

    scores = [r["relevanceScore"] for r in response.json()["results"]]
    assert scores == sorted(scores, reverse=True)


def test_students_cannot_upload_or_delete(classroom):
    headers = {"X-User-Id": classroom["student"].id}
    response = client.post("/materials", headers=headers, json={
        "title": "Notes", "type": "pdf", "classId": classroom["class_a"], "subjectId": classroom["subject"].id
    })
    assert response.status_code == 403
    assert client.delete("/materials/anything", headers=headers).status_code == 403


def test_delete_material(classroom, configured_services):
    headers = {"X-User-Id": classroom["teacher"].id}
    search = client.post("/materials/search", headers=headers, json={
        "query": "quadratic equations", "classId": classroom["class_a"]
    })
    material_id = search.json()["results"][0]["id"]

    response = client.delete(f"/materials/{material_id}", headers=headers)
    assert response.status_code == 200
    assert configured_services.vector_store.get(material_id) is None
    assert client.delete(f"/materials/{material_id}", headers=headers).status_code == 404


def test_chat(classroom):
    mock_client = MagicMock()
    mock_client.chat.return_value = {"message": {"content": "Factor it into (x - 2)(x - 3)."}}
    chat_service = ChatService(MagicMock(get_context_for_ai=MagicMock(return_value="")), "llama3.1:8b",
                               client=mock_client)

    with patch('study_retrieval.api.main.get_chat_service', return_value=chat_service):
        response = client.post("/chat", headers={"X-User-Id": classroom["student"].id},
                               json={"message": "How do I solve x^2 - 5x + 6 = 0?"})

    assert response.status_code == 200
    data = response.json()
    assert data["response"] == "Factor it into (x - 2)(x - 3)."
    assert "timestamp" in data


def test_chat_requires_message(classroom):
    response = client.post("/chat", headers={"X-User-Id": classroom["student"].id}, json={})
    assert response.status_code == 400


def test_chat_completion_failure(classroom):
    mock_client = MagicMock()
    mock_client.chat.side_effect = ConnectionError("ollama not running")
    chat_service = ChatService(None, "llama3.1:8b", client=mock_client)

    with patch('study_retrieval.api.main.get_chat_service', return_value=chat_service):
        response = client.post("/chat", headers={"X-User-Id": classroom["student"].id}, json={"message": "Hi"})

    assert response.status_code == 503


def test_chat_disabled(classroom):
    with patch('study_retrieval.api.main.CHAT_API_ENABLED', False):
        response = client.post("/chat", headers={"X-User-Id": classroom["student"].id}, json={"message": "Hi"})
    assert response.status_code == 503


def test_upload_with_unknown_subject_is_rejected(classroom):
    response = client.post("/materials", headers={"X-User-Id": classroom["teacher"].id}, json={
        "title": "Notes", "type": "pdf", "classId": classroom["class_a"], "subjectId": "no-such-subject"
    })
    assert response.status_code == 400
    assert "no-such-subject" in response.json()["detail"]
