"""Enumeration types for the Interview Practice core."""

from enum import Enum, auto
from typing import Optional


def _lookup_member(enum_cls, value):
    """Resolve "EnumName.MEMBER", "MEMBER" or positional int values."""
    if isinstance(value, str):
        prefix = f"{enum_cls.__name__}."
        if value.startswith(prefix):
            value = value.split(".", 1)[1]
        try:
            return enum_cls[value.upper()]
        except KeyError:
            return None
    if isinstance(value, int) and not isinstance(value, bool):
        members = list(enum_cls)
        if 0 <= value < len(members):
            return members[value]
    return None


class AgentRole(Enum):
    """Interviewer persona that produced (or should produce) a turn."""

    TECHNICAL = auto()
    HR = auto()
    BUSINESS = auto()

    @classmethod
    def _missing_(cls, value):
        """Handle string and integer values during deserialization."""
        return _lookup_member(cls, value)


class InterviewPhase(Enum):
    """Interview phases in their fixed, forward-only order."""

    WARM_UP = auto()
    TECHNICAL = auto()
    BEHAVIORAL = auto()
    BUSINESS = auto()
    QUESTIONS = auto()
    COMPLETED = auto()

    @property
    def next_phase(self) -> Optional["InterviewPhase"]:
        """Get the phase that follows this one, or None when terminal."""
        if self is InterviewPhase.COMPLETED:
            return None
        members = list(InterviewPhase)
        return members[members.index(self) + 1]

    @property
    def is_terminal(self) -> bool:
        return self is InterviewPhase.COMPLETED

    @classmethod
    def _missing_(cls, value):
        """Handle string and integer values during deserialization."""
        if isinstance(value, str) and value.lower() == "warmup":
            return cls.WARM_UP
        return _lookup_member(cls, value)


class ContentType(str, Enum):
    """Known knowledge-base content categories."""

    QUESTION = "question"
    ANSWER = "answer"
    JD = "jd"
    USER_QUESTION = "user_question"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class RotationStrategy(Enum):
    """Agent selection policy for the scheduler."""

    FIXED_ORDER = auto()
    RANDOM = auto()
    PHASE_BASED = auto()

    @classmethod
    def _missing_(cls, value):
        """Handle string and integer values during deserialization."""
        if isinstance(value, str):
            value = value.replace("-", "_")
        return _lookup_member(cls, value)


class RagState(Enum):
    """Lifecycle of the retrieval facade."""

    UNINITIALIZED = auto()
    INITIALIZING = auto()
    READY = auto()
    FAILED = auto()


class MatchStatus(str, Enum):
    """How well a user's answer covers a point of the reference answer."""

    MATCHED = "matched"
    PARTIAL = "partial"
    MISSING = "missing"
