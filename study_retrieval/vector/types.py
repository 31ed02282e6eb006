"""
Record, result and filter types shared by the embedder, the stores and the retrieval service.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

MATERIAL_TYPES = ("pdf", "video", "image", "link")


@dataclass
class IndexedRecord:
    """One entry in the vector collection."""

    id: str
    """Identifier shared with the system-of-record material"""

    values: List[float]
    """Embedding vector"""

    metadata: Dict[str, Any]
    """title, description, content snippet, classId, subjectId, type and optional url"""


@dataclass
class CandidateResult:
    """A similarity match returned by a vector store query."""

    id: str
    """Identifier of the matching record"""

    score: float
    """Cosine similarity, higher is more similar"""

    metadata: Dict[str, Any] = field(default_factory=dict)
    """Metadata stored with the matched record"""


@dataclass(frozen=True)
class SearchFilter:
    """Conjunction over class, subject and content type. Unset fields match anything."""

    class_id: Optional[str] = None
    subject_id: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        """Metadata key -> required value, for the fields that are set."""
        conditions = {}
        if self.class_id:
            conditions["classId"] = self.class_id
        if self.subject_id:
            conditions["subjectId"] = self.subject_id
        if self.type:
            conditions["type"] = self.type
        return conditions

    def is_empty(self) -> bool:
        return not self.to_dict()

    def matches(self, metadata: Dict[str, Any]) -> bool:
        """Whether a record's metadata satisfies every set field."""
        return all(metadata.get(key) == value for key, value in self.to_dict().items())

    def to_chroma_where(self) -> Optional[Dict[str, Any]]:
        """Chroma `where` clause; None when the filter is empty."""
        conditions = self.to_dict()
        if not conditions:
            return None
        if len(conditions) == 1:
            return dict(conditions)
        return {"$and": [{key: value} for key, value in conditions.items()]}

    @classmethod
    def from_optional(cls, class_id: Optional[str] = None, subject_id: Optional[str] = None,
                      type: Optional[str] = None) -> Optional["SearchFilter"]:
        """Build a filter, or None when no field is given."""
        search_filter = cls(class_id=class_id or None, subject_id=subject_id or None, type=type or None)
        return None if search_filter.is_empty() else search_filter
