"""Interview phase state machine."""

from typing import Dict, List, Optional

from ..models.enums import AgentRole, InterviewPhase
from ..models.interview import AnalysisResult, InterviewProgress, PhaseConfig
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger


DEFAULT_ADVANCE_SCORE = 8.0

DEFAULT_PHASE_CONFIGS: List[PhaseConfig] = [
    PhaseConfig(phase=InterviewPhase.WARM_UP, min_questions=1, max_questions=2, primary_role=AgentRole.HR),
    PhaseConfig(phase=InterviewPhase.TECHNICAL, min_questions=3, max_questions=5, primary_role=AgentRole.TECHNICAL),
    PhaseConfig(phase=InterviewPhase.BEHAVIORAL, min_questions=2, max_questions=3, primary_role=AgentRole.HR),
    PhaseConfig(phase=InterviewPhase.BUSINESS, min_questions=2, max_questions=3, primary_role=AgentRole.BUSINESS),
    PhaseConfig(phase=InterviewPhase.QUESTIONS, min_questions=1, max_questions=2, primary_role=AgentRole.HR),
]


class InterviewStateMachine:
    """Tracks the interview phase and per-phase question quotas.

    Phases only move forward. A phase ends when its maximum question count
    is reached, or early when the minimum is met and an answer scores at
    least ``advance_score``.
    """

    def __init__(self, phase_configs: Optional[List[PhaseConfig]] = None,
                 advance_score: float = DEFAULT_ADVANCE_SCORE):
        """Initialize the state machine.

        Args:
            phase_configs: Quota table, defaults to the standard five-phase table
            advance_score: Score at or above which a phase may end early

        Raises:
            ConfigurationError: If a phase appears twice or has min above max
        """
        configs = list(phase_configs) if phase_configs is not None else list(DEFAULT_PHASE_CONFIGS)
        self._configs: Dict[InterviewPhase, PhaseConfig] = {}
        for config in configs:
            if config.phase in self._configs:
                raise ConfigurationError(f"Duplicate phase config: {config.phase.name}", config_key="phases")
            if config.min_questions > config.max_questions:
                raise ConfigurationError(
                    f"Phase {config.phase.name} has min_questions above max_questions", config_key="phases"
                )
            self._configs[config.phase] = config

        self.advance_score = advance_score
        self.logger = get_logger("interview.state_machine")
        self._current_phase = InterviewPhase.WARM_UP
        self._phase_question_count = 0
        self._total_question_count = 0

    @property
    def current_phase(self) -> InterviewPhase:
        return self._current_phase

    @property
    def is_completed(self) -> bool:
        return self._current_phase.is_terminal

    def _current_config(self) -> Optional[PhaseConfig]:
        return self._configs.get(self._current_phase)

    def record_question(self) -> Optional[InterviewPhase]:
        """Count a question asked in the current phase.

        Returns:
            The new phase if the phase quota forced an advance, otherwise None
        """
        self._phase_question_count += 1
        self._total_question_count += 1

        config = self._current_config()
        if config is None:
            return None

        if self._phase_question_count >= config.max_questions:
            return self.advance_phase()
        return None

    def maybe_advance(self, analysis: AnalysisResult) -> Optional[InterviewPhase]:
        """Advance early when the quota minimum is met and the answer scored well.

        Returns:
            The new phase if it advanced, otherwise None
        """
        config = self._current_config()
        if config is None:
            return None

        if self._phase_question_count >= config.min_questions and analysis.score >= self.advance_score:
            return self.advance_phase()
        return None

    def advance_phase(self) -> Optional[InterviewPhase]:
        """Move to the next phase and reset the phase counter.

        Returns:
            The new phase, or None if the interview is already completed
        """
        next_phase = self._current_phase.next_phase
        if next_phase is None:
            return None

        self.logger.info(
            f"Phase advanced: {self._current_phase.name} -> {next_phase.name}",
            extra={"phase_question_count": self._phase_question_count,
                   "total_question_count": self._total_question_count},
        )
        self._phase_question_count = 0
        self._current_phase = next_phase
        return next_phase

    def progress(self) -> InterviewProgress:
        return InterviewProgress(
            current_phase=self._current_phase,
            phase_question_count=self._phase_question_count,
            total_question_count=self._total_question_count,
            is_completed=self.is_completed,
        )

    def current_primary_role(self) -> Optional[AgentRole]:
        """Lead interviewer for the current phase, None when completed."""
        config = self._current_config()
        return config.primary_role if config is not None else None
