"""Interview conversation models for the Interview Practice core."""

from typing import List, Optional

from pydantic import Field

from .base import BaseModel, FrozenModel
from .enums import AgentRole, InterviewPhase, MatchStatus
from ..utils.exceptions import TurnAlreadyAnsweredError, ValidationError


class AnalysisResult(FrozenModel):
    """Assessment of one candidate answer."""

    score: float = Field(..., ge=1.0, le=10.0, description="Answer quality score")
    strengths: List[str] = Field(default_factory=list, description="What the answer did well")
    improvements: List[str] = Field(default_factory=list, description="What the answer could improve")
    summary: str = Field(default="", description="Short overall assessment")


class ConversationTurn(BaseModel):
    """One question asked by an interviewer and the candidate's reply."""

    role: AgentRole = Field(..., description="Interviewer role that asked the question")
    role_name: str = Field(..., description="Display name of the interviewer")
    question: str = Field(..., description="Question text")
    answer: Optional[str] = Field(default=None, description="Candidate answer")
    analysis: Optional[AnalysisResult] = Field(default=None, description="Answer analysis")

    @property
    def is_pending(self) -> bool:
        """Check if the turn still waits for an answer."""
        return self.answer is None

    def attach_answer(self, answer: str) -> None:
        """Record the candidate's answer. Allowed exactly once."""
        if self.answer is not None:
            raise TurnAlreadyAnsweredError("Turn already has an answer", field_name="answer")
        self.answer = answer

    def attach_analysis(self, analysis: AnalysisResult) -> None:
        """Record the analysis of the answer. Allowed once, after the answer."""
        if self.answer is None:
            raise ValidationError("Cannot attach analysis before an answer", field_name="analysis")
        if self.analysis is not None:
            raise TurnAlreadyAnsweredError("Turn already has an analysis", field_name="analysis")
        self.analysis = analysis


class InterviewContext(BaseModel):
    """State of one interview session shared by the scheduler and state machine."""

    resume: str = Field(default="", description="Candidate resume text")
    job_description: str = Field(default="", description="Target job description text")
    conversation_history: List[ConversationTurn] = Field(default_factory=list, description="Turns in ask order")
    current_phase: InterviewPhase = Field(default=InterviewPhase.WARM_UP, description="Current interview phase")

    def pending_turn(self) -> Optional[ConversationTurn]:
        """Get the most recent turn if it has no answer yet."""
        if not self.conversation_history:
            return None
        last_turn = self.conversation_history[-1]
        return last_turn if last_turn.is_pending else None

    def answered_turns(self) -> List[ConversationTurn]:
        """Get all turns that have an answer."""
        return [turn for turn in self.conversation_history if not turn.is_pending]

    def average_score(self) -> Optional[float]:
        """Average analysis score across analyzed turns."""
        scores = [turn.analysis.score for turn in self.conversation_history if turn.analysis is not None]
        if not scores:
            return None
        return round(sum(scores) / len(scores), 2)


class PhaseConfig(FrozenModel):
    """Static question quota and lead interviewer for a phase."""

    phase: InterviewPhase
    min_questions: int = Field(..., ge=0)
    max_questions: int = Field(..., ge=1)
    primary_role: AgentRole


class InterviewProgress(FrozenModel):
    """Snapshot of the state machine counters."""

    current_phase: InterviewPhase
    phase_question_count: int
    total_question_count: int
    is_completed: bool


class PointComparison(BaseModel):
    """Comparison of a single point between the user's and the reference answer."""

    aspect: str
    best_answer_point: str
    user_answer_point: str
    match_status: MatchStatus
    suggestion: str = ""


class ComparisonResult(BaseModel):
    """Point-by-point comparison of an answer against a reference answer."""

    overall_match: float = Field(..., ge=0.0, le=1.0)
    comparisons: List[PointComparison] = Field(default_factory=list)
    missing_points: List[str] = Field(default_factory=list)
    extra_points: List[str] = Field(default_factory=list)
