"""Data models for the Interview Practice core."""

from .base import BaseModel, FrozenModel
from .enums import (
    AgentRole,
    ContentType,
    InterviewPhase,
    MatchStatus,
    RagState,
    RotationStrategy,
)
from .interview import (
    AnalysisResult,
    ComparisonResult,
    ConversationTurn,
    InterviewContext,
    InterviewProgress,
    PhaseConfig,
    PointComparison,
)
from .knowledge import (
    BootstrapProgress,
    BootstrapResult,
    ImportResult,
    KnowledgeEntry,
    KnowledgeItem,
    KnowledgeStats,
    KnowledgeStatus,
    SimilaritySearchResult,
)

__all__ = [
    "BaseModel",
    "FrozenModel",
    "AgentRole",
    "ContentType",
    "InterviewPhase",
    "MatchStatus",
    "RagState",
    "RotationStrategy",
    "AnalysisResult",
    "ComparisonResult",
    "ConversationTurn",
    "InterviewContext",
    "InterviewProgress",
    "PhaseConfig",
    "PointComparison",
    "BootstrapProgress",
    "BootstrapResult",
    "ImportResult",
    "KnowledgeEntry",
    "KnowledgeItem",
    "KnowledgeStats",
    "KnowledgeStatus",
    "SimilaritySearchResult",
]
