"""
System-of-record data access for users, subjects and study materials.

Material writes keep the vector index in step: create and update re-index the
material, delete removes its vector. Index failures are logged and never undo
or fail the database write.
"""

import sqlite3
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..util.logging import logger
from ..vector.types import MATERIAL_TYPES
from . import config
from .db import get_db, init_db
from .schema import MaterialRecord, SubjectRecord, UserRecord

MATERIAL_FIELDS = ("title", "description", "content", "type", "url", "class_id", "subject_id")

# Initialize database on module import
init_db()


def _new_id() -> str:
    return uuid.uuid4().hex


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return datetime.now()


def _row_to_material(row: sqlite3.Row) -> MaterialRecord:
    return MaterialRecord(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        content=row["content"] or "",
        type=row["type"],
        class_id=row["class_id"],
        subject_id=row["subject_id"],
        uploaded_by=row["uploaded_by"],
        url=row["url"],
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"])
    )


def _retrieval(retrieval_service=None):
    return retrieval_service if retrieval_service is not None else config.get_retrieval_service()


def _index_material(material: MaterialRecord, retrieval_service=None) -> bool:
    """Index a material; a failure is logged and reported as False."""
    service = _retrieval(retrieval_service)
    if service is None:
        return False
    indexed = service.index_material(
        material.id,
        material.title,
        material.description,
        material.content,
        material.index_metadata()
    )
    if not indexed:
        logger.log_material_operation("index", material.id, status="degraded",
                                      details={"message": "material saved without vector index entry"})
    return indexed


# Users

def create_user(name: str, email: str, role: str = "student", class_id: Optional[str] = None,
                user_id: Optional[str] = None) -> UserRecord:
    """Insert a user and return it."""
    user = UserRecord(id=user_id or _new_id(), name=name, email=email, role=role, class_id=class_id)
    with get_db() as conn:
        conn.execute(
            "INSERT INTO users (id, name, email, role, class_id) VALUES (?, ?, ?, ?, ?)",
            (user.id, user.name, user.email, user.role, user.class_id)
        )
        conn.commit()
    return user


def get_user(user_id: str) -> Optional[UserRecord]:
    """Get a user by id."""
    if not user_id or not user_id.strip():
        return None
    with get_db() as conn:
        row = conn.execute(
            "SELECT id, name, email, role, class_id FROM users WHERE id = ?",
            (user_id.strip(),)
        ).fetchone()
    if not row:
        return None
    return UserRecord(id=row["id"], name=row["name"], email=row["email"], role=row["role"], class_id=row["class_id"])


# Subjects

def create_subject(name: str, color: str = "#3b82f6", class_id: Optional[str] = None,
                   subject_id: Optional[str] = None) -> SubjectRecord:
    """Insert a subject and return it."""
    subject = SubjectRecord(id=subject_id or _new_id(), name=name, color=color, class_id=class_id)
    with get_db() as conn:
        conn.execute(
            "INSERT INTO subjects (id, name, color, class_id) VALUES (?, ?, ?, ?)",
            (subject.id, subject.name, subject.color, subject.class_id)
        )
        conn.commit()
    return subject


def get_subject(subject_id: str) -> Optional[SubjectRecord]:
    """Get a subject by id."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT id, name, color, class_id FROM subjects WHERE id = ?",
            (subject_id,)
        ).fetchone()
    if not row:
        return None
    return SubjectRecord(id=row["id"], name=row["name"], color=row["color"], class_id=row["class_id"])


# Materials

def create_material(title: str, description: str, content: str, type: str, class_id: str,
                    subject_id: str, uploaded_by: Optional[str] = None, url: Optional[str] = None,
                    material_id: Optional[str] = None, retrieval_service=None) -> MaterialRecord:
    """
    Insert a material and index it for semantic search.

    Raises:
        ValueError: unknown material type or subject, or missing title
        sqlite3.Error: the database write failed
    """
    if type not in MATERIAL_TYPES:
        raise ValueError(f"type must be one of: {list(MATERIAL_TYPES)}")
    if not title or not title.strip():
        raise ValueError("title cannot be empty")
    if get_subject(subject_id) is None:
        raise ValueError(f"Unknown subject: {subject_id}")

    material_id = material_id or _new_id()
    now = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO materials (id, title, description, content, type, url, class_id, subject_id,
                                      uploaded_by, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (material_id, title, description, content, type, url, class_id, subject_id, uploaded_by, now, now)
        )
        conn.commit()

    material = get_material(material_id)
    logger.log_material_operation("create", material_id, details={"title": title, "type": type})
    _index_material(material, retrieval_service)
    return material


def get_material(material_id: str) -> Optional[MaterialRecord]:
    """Get a material by id."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM materials WHERE id = ?", (material_id,)).fetchone()
    return _row_to_material(row) if row else None


def list_materials(class_id: Optional[str] = None) -> List[MaterialRecord]:
    """List materials, optionally for one class."""
    with get_db() as conn:
        if class_id:
            rows = conn.execute("SELECT * FROM materials WHERE class_id = ? ORDER BY created_at DESC",
                                (class_id,)).fetchall()
        else:
            rows = conn.execute("SELECT * FROM materials ORDER BY created_at DESC").fetchall()
    return [_row_to_material(row) for row in rows]


def update_material(material_id: str, retrieval_service=None, **changes) -> Optional[MaterialRecord]:
    """
    Update material fields and re-index it.

    Returns:
        The updated material, or None if it does not exist
    """
    unknown = set(changes) - set(MATERIAL_FIELDS)
    if unknown:
        raise ValueError(f"Unknown material fields: {sorted(unknown)}")
    if "type" in changes and changes["type"] not in MATERIAL_TYPES:
        raise ValueError(f"type must be one of: {list(MATERIAL_TYPES)}")
    if changes.get("subject_id") is not None and get_subject(changes["subject_id"]) is None:
        raise ValueError(f"Unknown subject: {changes['subject_id']}")

    if get_material(material_id) is None:
        return None

    if changes:
        assignments = ", ".join(f"{field} = ?" for field in changes)
        with get_db() as conn:
            conn.execute(
                f"UPDATE materials SET {assignments}, updated_at = ? WHERE id = ?",
                (*changes.values(), datetime.now().isoformat(), material_id)
            )
            conn.commit()

    material = get_material(material_id)
    logger.log_material_operation("update", material_id, details={"fields": sorted(changes)})
    _index_material(material, retrieval_service)
    return material


def delete_material(material_id: str, retrieval_service=None) -> bool:
    """Delete a material and its vector. Returns False if the material did not exist."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM materials WHERE id = ?", (material_id,))
        conn.commit()
        deleted = cursor.rowcount > 0

    service = _retrieval(retrieval_service)
    if service is not None and not service.remove_material(material_id):
        logger.log_material_operation("unindex", material_id, status="degraded",
                                      details={"message": "vector entry left behind"})

    logger.log_material_operation("delete", material_id, status="success" if deleted else "skipped")
    return deleted


def get_materials_by_ids(material_ids: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Batch fetch materials with subject and uploader joined in.

    The result order is whatever the database returns, not the order of ``material_ids``.
    """
    ids = [str(material_id) for material_id in material_ids]
    if not ids:
        return []

    placeholders = ", ".join("?" for _ in ids)
    with get_db() as conn:
        rows = conn.execute(
            f"""SELECT m.*, s.name AS subject_name, s.color AS subject_color,
                       u.name AS uploader_name, u.email AS uploader_email
                FROM materials m
                LEFT JOIN subjects s ON s.id = m.subject_id
                LEFT JOIN users u ON u.id = m.uploaded_by
                WHERE m.id IN ({placeholders})""",
            ids
        ).fetchall()

    entities = []
    for row in rows:
        material = _row_to_material(row)
        entities.append({
            "id": material.id,
            "title": material.title,
            "description": material.description,
            "content": material.content,
            "type": material.type,
            "url": material.url,
            "classId": material.class_id,
            "subjectId": {
                "id": material.subject_id,
                "name": row["subject_name"],
                "color": row["subject_color"]
            },
            "uploadedBy": {
                "id": material.uploaded_by,
                "name": row["uploader_name"],
                "email": row["uploader_email"]
            },
            "createdAt": material.created_at.isoformat(),
            "updatedAt": material.updated_at.isoformat()
        })
    return entities
