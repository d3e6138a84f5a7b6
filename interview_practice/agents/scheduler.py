"""Agent scheduler for multi-interviewer rotation."""

import random
from typing import Dict, List, Optional

from ..models.enums import AgentRole, InterviewPhase, RotationStrategy
from ..models.interview import AnalysisResult, ConversationTurn, InterviewContext
from ..utils.exceptions import AgentError, NoPendingTurnError
from ..utils.logging import get_logger
from .base_agent import InterviewerAgent


PHASE_ROLES: Dict[InterviewPhase, AgentRole] = {
    InterviewPhase.WARM_UP: AgentRole.HR,
    InterviewPhase.TECHNICAL: AgentRole.TECHNICAL,
    InterviewPhase.BEHAVIORAL: AgentRole.HR,
    InterviewPhase.BUSINESS: AgentRole.BUSINESS,
    InterviewPhase.QUESTIONS: AgentRole.HR,
    InterviewPhase.COMPLETED: AgentRole.HR,
}


class AgentScheduler:
    """Chooses the active interviewer and runs question/answer turns.

    ``execute_turn`` is the only place turns are created and
    ``process_answer`` the only place answers and analyses are attached.
    """

    def __init__(self, agents: List[InterviewerAgent],
                 strategy: RotationStrategy = RotationStrategy.FIXED_ORDER,
                 rng: Optional[random.Random] = None):
        """Initialize the scheduler.

        Args:
            agents: Interviewers in rotation order
            strategy: Rotation strategy
            rng: Random source for the random strategy

        Raises:
            AgentError: If no agents are given
        """
        if not agents:
            raise AgentError("Scheduler needs at least one agent", agent_name="AgentScheduler")
        self.agents = list(agents)
        self.strategy = strategy
        self.rng = rng or random.Random()
        self.current_index = 0
        self.logger = get_logger("agent.scheduler")

    def current_agent(self) -> InterviewerAgent:
        return self.agents[self.current_index]

    def next_agent(self) -> InterviewerAgent:
        """Advance according to the rotation strategy.

        Phase-based rotation is driven by ``select_by_phase`` and leaves the
        current agent unchanged here.
        """
        if self.strategy is RotationStrategy.FIXED_ORDER:
            self.current_index = (self.current_index + 1) % len(self.agents)
        elif self.strategy is RotationStrategy.RANDOM:
            self.current_index = self.rng.randrange(len(self.agents))
        return self.current_agent()

    def select_by_phase(self, phase: InterviewPhase) -> InterviewerAgent:
        """Make the phase's lead interviewer current (first agent if absent)."""
        target_role = PHASE_ROLES[phase]
        self.current_index = next(
            (idx for idx, agent in enumerate(self.agents) if agent.role is target_role), 0
        )
        return self.current_agent()

    def agent_for_role(self, role: AgentRole) -> InterviewerAgent:
        for agent in self.agents:
            if agent.role is role:
                return agent
        return self.current_agent()

    async def execute_turn(self, context: InterviewContext) -> ConversationTurn:
        """Ask the current agent for a question and append an unanswered turn.

        Raises:
            UpstreamCallFailedError: If question generation fails; no turn is appended
        """
        agent = self.current_agent()
        question = await agent.generate_question(context)
        turn = ConversationTurn(role=agent.role, role_name=agent.role_name, question=question)
        context.conversation_history.append(turn)
        self.logger.info(
            "Turn created",
            extra={"role": agent.role.name, "turn_number": len(context.conversation_history)},
        )
        return turn

    async def process_answer(self, context: InterviewContext, answer: str) -> AnalysisResult:
        """Analyze the answer to the pending turn and attach both to it.

        The turn's own interviewer analyzes it. If analysis fails the turn
        stays pending and the answer can be submitted again.

        Raises:
            NoPendingTurnError: If there is no turn or the last one is answered
        """
        turn = context.pending_turn()
        if turn is None:
            raise NoPendingTurnError()

        agent = self.agent_for_role(turn.role)
        analysis = await agent.analyze_answer(turn.question, answer, context)
        turn.attach_answer(answer)
        turn.attach_analysis(analysis)
        self.logger.info("Answer processed", extra={"role": turn.role.name, "score": analysis.score})
        return analysis

    def should_follow_up(self, answer: str, analysis: AnalysisResult) -> bool:
        return self.current_agent().should_follow_up(answer, analysis)
