"""
System-of-record entities: users, subjects and study materials.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class UserRecord:
    id: str
    name: str
    email: str
    role: str  # student, teacher, admin
    class_id: Optional[str] = None

    @property
    def is_student(self) -> bool:
        return self.role == "student"


@dataclass
class SubjectRecord:
    id: str
    name: str
    color: str
    class_id: Optional[str] = None


@dataclass
class MaterialRecord:
    id: str
    title: str
    description: str
    content: str
    type: str  # pdf, video, image, link
    class_id: str
    subject_id: str
    uploaded_by: Optional[str]
    url: Optional[str]
    created_at: datetime
    updated_at: datetime

    def index_metadata(self) -> Dict[str, Any]:
        """Filterable metadata stored alongside the material's vector."""
        metadata = {
            "classId": self.class_id,
            "subjectId": self.subject_id,
            "type": self.type,
        }
        if self.url:
            metadata["url"] = self.url
        return metadata
