"""Orchestrator for coordinating interviewers and interview phases."""

import random
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Type

from ..models.enums import AgentRole, InterviewPhase, RotationStrategy
from ..models.interview import (
    AnalysisResult,
    ComparisonResult,
    ConversationTurn,
    InterviewContext,
    InterviewProgress,
)
from ..services.llm_manager import LLMManager
from ..services.rag_service import RagService
from ..services.state_machine import InterviewStateMachine
from ..utils.exceptions import AgentError, InterviewPracticeError
from ..utils.logging import set_correlation_id
from .base_agent import BaseAgent, InterviewerAgent
from .business_agent import BusinessInterviewer
from .comparison_agent import ComparisonAgent
from .hr_agent import HRInterviewer
from .scheduler import AgentScheduler
from .technical_agent import TechnicalInterviewer


AGENT_CLASSES: Dict[AgentRole, Type[InterviewerAgent]] = {
    AgentRole.TECHNICAL: TechnicalInterviewer,
    AgentRole.HR: HRInterviewer,
    AgentRole.BUSINESS: BusinessInterviewer,
}


def build_default_agents(llm_manager: LLMManager, rag_service: Optional[RagService] = None,
                         **agent_kwargs) -> List[InterviewerAgent]:
    """Build one interviewer per role in Technical, HR, Business order."""
    agents: List[InterviewerAgent] = []
    for role, agent_cls in AGENT_CLASSES.items():
        if role is AgentRole.TECHNICAL:
            agents.append(agent_cls(llm_manager, rag_service=rag_service, **agent_kwargs))
        else:
            agents.append(agent_cls(llm_manager, **agent_kwargs))
    return agents


@dataclass
class AnswerFeedback:
    """What the candidate gets back after answering a question."""

    analysis: AnalysisResult
    follow_up: bool
    new_phase: Optional[InterviewPhase]
    progress: InterviewProgress


class InterviewOrchestrator(BaseAgent):
    """Runs one interview session.

    Each question: pick the interviewer (by phase or by rotation), create the
    turn, count it against the phase quota. Each answer: analyze it, then let
    the state machine decide on an early phase advance.
    """

    def __init__(self, agents: List[InterviewerAgent], context: InterviewContext,
                 strategy: RotationStrategy = RotationStrategy.PHASE_BASED,
                 state_machine: Optional[InterviewStateMachine] = None,
                 rng: Optional[random.Random] = None,
                 session_id: Optional[str] = None,
                 comparison_agent: Optional[ComparisonAgent] = None,
                 rag_service: Optional[RagService] = None):
        """Initialize the orchestrator.

        Args:
            agents: Interviewers taking part in the session
            context: Session context, owned by this orchestrator
            strategy: Rotation strategy
            state_machine: Phase state machine, defaults to the standard phase table
            rng: Random source for the random strategy
            session_id: Correlation ID used in logs
            comparison_agent: Compares answers with reference answers, optional
            rag_service: Knowledge base holding the reference answers
        """
        super().__init__("InterviewOrchestrator")
        self.context = context
        self.strategy = strategy
        self.scheduler = AgentScheduler(agents, strategy=strategy, rng=rng)
        self.state_machine = state_machine or InterviewStateMachine()
        self.session_id = session_id or str(uuid.uuid4())
        self.comparison_agent = comparison_agent
        self.rag_service = rag_service
        self.context.current_phase = self.state_machine.current_phase

    @property
    def is_completed(self) -> bool:
        return self.state_machine.is_completed

    def progress(self) -> InterviewProgress:
        return self.state_machine.progress()

    def _sync_phase(self) -> None:
        self.context.current_phase = self.state_machine.current_phase

    def _select_agent(self) -> InterviewerAgent:
        if self.strategy is RotationStrategy.PHASE_BASED:
            return self.scheduler.select_by_phase(self.state_machine.current_phase)
        if self.context.conversation_history:
            return self.scheduler.next_agent()
        return self.scheduler.current_agent()

    async def next_question(self) -> ConversationTurn:
        """Ask the next question.

        Raises:
            AgentError: If the interview is completed or a question awaits an answer
            UpstreamCallFailedError: If question generation fails
        """
        set_correlation_id(self.session_id)
        if self.is_completed:
            raise AgentError("Interview already completed", agent_name=self.agent_name)
        if self.context.pending_turn() is not None:
            raise AgentError("Previous question has not been answered", agent_name=self.agent_name)

        agent = self._select_agent()
        turn = await self.scheduler.execute_turn(self.context)
        new_phase = self.state_machine.record_question()
        self._sync_phase()

        self.log_operation("next_question", {
            "role": agent.role.name,
            "phase": self.context.current_phase.name,
            "phase_advanced": new_phase is not None,
        })
        return turn

    async def submit_answer(self, answer: str) -> AnswerFeedback:
        """Analyze the answer to the pending question and update the phase.

        Raises:
            NoPendingTurnError: If no question awaits an answer
        """
        set_correlation_id(self.session_id)
        analysis = await self.scheduler.process_answer(self.context, answer)
        new_phase = self.state_machine.maybe_advance(analysis)
        self._sync_phase()

        turn = self.context.conversation_history[-1]
        follow_up = self.scheduler.agent_for_role(turn.role).should_follow_up(answer, analysis)

        self.log_operation("submit_answer", {
            "score": analysis.score,
            "follow_up": follow_up,
            "phase": self.context.current_phase.name,
        })
        return AnswerFeedback(
            analysis=analysis,
            follow_up=follow_up,
            new_phase=new_phase,
            progress=self.progress(),
        )

    async def compare_with_best_answer(self) -> Optional[ComparisonResult]:
        """Compare the latest answer with the closest reference answer in the knowledge base.

        Returns:
            The comparison, or None when comparison is not configured, nothing
            has been answered yet, or the knowledge base has no usable answer
        """
        if self.comparison_agent is None or self.rag_service is None:
            return None
        answered = self.context.answered_turns()
        if not answered:
            return None

        set_correlation_id(self.session_id)
        turn = answered[-1]
        try:
            best_answers = await self.rag_service.retrieve_best_answers(turn.question, 1)
        except InterviewPracticeError as e:
            self.logger.warning(f"Reference answers unavailable, skipping comparison: {e}")
            return None
        if not best_answers:
            return None

        result = await self.comparison_agent.compare(turn.question, turn.answer, best_answers[0].content)
        self.log_operation("compare_with_best_answer", {
            "reference_id": best_answers[0].id,
            "overall_match": result.overall_match,
        })
        return result
