"""Knowledge base models for the Interview Practice core."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import BaseModel, FrozenModel


class KnowledgeEntry(FrozenModel):
    """A persisted (content, vector, metadata) record."""

    id: int = Field(..., description="Row identifier")
    content_type: str = Field(..., description="Content category")
    content: str = Field(..., description="Original text")
    embedding: List[float] = Field(default_factory=list, description="Embedding vector")
    metadata: Optional[str] = Field(default=None, description="Optional structured metadata")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")


class SimilaritySearchResult(FrozenModel):
    """One ranked hit from a similarity query."""

    id: int
    content: str
    content_type: str
    metadata: Optional[str] = None
    similarity: float


class KnowledgeItem(BaseModel):
    """A record as accepted by bulk import."""

    content_type: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    metadata: Optional[str] = None


class ImportResult(BaseModel):
    """Outcome of a bulk import."""

    success_count: int = 0
    fail_count: int = 0
    errors: List[str] = Field(default_factory=list)


class KnowledgeStatus(BaseModel):
    """Cheap knowledge base status for the UI."""

    is_empty: bool
    question_count: int
    answer_count: int


class KnowledgeStats(BaseModel):
    """Knowledge base counts per category."""

    total_vectors: int
    question_count: int
    answer_count: int
    jd_count: int


class BootstrapProgress(BaseModel):
    """Progress report emitted while seeding the knowledge base."""

    current: int
    total: int
    status: str
    category: str


class BootstrapResult(BaseModel):
    """Outcome of seeding the knowledge base."""

    total_questions: int = 0
    total_answers: int = 0
    success: bool = True
    message: str = ""
    failed_items: List[str] = Field(default_factory=list)
