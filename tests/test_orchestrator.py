import asyncio
import random

import pytest

from interview_practice.agents.comparison_agent import ComparisonAgent
from interview_practice.agents.orchestrator_agent import InterviewOrchestrator, build_default_agents
from interview_practice.models.enums import AgentRole, InterviewPhase, MatchStatus, RotationStrategy
from interview_practice.models.interview import InterviewContext
from interview_practice.models.knowledge import SimilaritySearchResult
from interview_practice.utils.exceptions import AgentError, NoPendingTurnError, StorageError

from .fakes import FakeLLMClient, analysis_json, make_llm_manager


class ScriptedInterview:
    """Responds to question prompts with numbered questions and to analyses with a fixed score."""

    def __init__(self, score=6):
        self.score = score
        self.questions = 0

    def __call__(self, messages):
        if messages[1]["content"].startswith("Question:"):
            return analysis_json(self.score)
        self.questions += 1
        return f"Question {self.questions}?"


def make_orchestrator(score=6, strategy=RotationStrategy.PHASE_BASED, **kwargs):
    client = FakeLLMClient(responder=ScriptedInterview(score))
    agents = build_default_agents(make_llm_manager(client))
    context = InterviewContext(resume="Python developer", job_description="Backend engineer")
    return InterviewOrchestrator(agents, context, strategy=strategy, **kwargs), client


def play(orchestrator, rounds):
    async def run():
        feedback = []
        for idx in range(rounds):
            await orchestrator.next_question()
            feedback.append(await orchestrator.submit_answer(f"Answer number {idx}"))
        return feedback

    return asyncio.run(run())


def test_phase_based_run_starts_with_hr_then_technical():
    orchestrator, _ = make_orchestrator()

    play(orchestrator, 3)

    roles = [turn.role for turn in orchestrator.context.conversation_history]
    assert roles == [AgentRole.HR, AgentRole.HR, AgentRole.TECHNICAL]
    assert orchestrator.context.current_phase is InterviewPhase.TECHNICAL
    assert orchestrator.progress().total_question_count == 3


def test_high_score_advances_phase_early():
    orchestrator, _ = make_orchestrator(score=9)

    feedback = play(orchestrator, 2)

    assert feedback[0].new_phase is InterviewPhase.TECHNICAL
    roles = [turn.role for turn in orchestrator.context.conversation_history]
    assert roles == [AgentRole.HR, AgentRole.TECHNICAL]


def test_feedback_reports_analysis_and_follow_up():
    orchestrator, _ = make_orchestrator(score=6)

    feedback = play(orchestrator, 1)[0]

    assert feedback.analysis.score == 6
    # Short answer and a low score both call for a follow-up.
    assert feedback.follow_up
    assert feedback.new_phase is None
    assert feedback.progress.current_phase is InterviewPhase.WARM_UP


def test_next_question_requires_answer_first():
    orchestrator, _ = make_orchestrator()

    async def run():
        await orchestrator.next_question()
        with pytest.raises(AgentError):
            await orchestrator.next_question()

    asyncio.run(run())
    assert len(orchestrator.context.conversation_history) == 1


def test_submit_without_question_fails():
    orchestrator, _ = make_orchestrator()

    with pytest.raises(NoPendingTurnError):
        asyncio.run(orchestrator.submit_answer("hello"))


def test_fixed_order_rotates_through_agents():
    orchestrator, _ = make_orchestrator(strategy=RotationStrategy.FIXED_ORDER)

    play(orchestrator, 4)

    roles = [turn.role for turn in orchestrator.context.conversation_history]
    assert roles == [AgentRole.TECHNICAL, AgentRole.HR, AgentRole.BUSINESS, AgentRole.TECHNICAL]


def test_random_strategy_is_reproducible_with_seed():
    first, _ = make_orchestrator(strategy=RotationStrategy.RANDOM, rng=random.Random(3))
    second, _ = make_orchestrator(strategy=RotationStrategy.RANDOM, rng=random.Random(3))

    play(first, 4)
    play(second, 4)

    assert [t.role for t in first.context.conversation_history] == \
        [t.role for t in second.context.conversation_history]


def test_completed_interview_refuses_questions():
    orchestrator, _ = make_orchestrator()
    while not orchestrator.is_completed:
        orchestrator.state_machine.advance_phase()

    with pytest.raises(AgentError):
        asyncio.run(orchestrator.next_question())


def test_average_score_over_answered_turns():
    orchestrator, _ = make_orchestrator(score=7)

    play(orchestrator, 2)

    assert orchestrator.context.average_score() == 7.0
    assert len(orchestrator.context.answered_turns()) == 2


COMPARISON_JSON = """{
  "overall_match": 0.8,
  "comparisons": [
    {"aspect": "Accuracy", "best_answer_point": "Uses indexes", "user_answer_point": "Mentions indexes",
     "match_status": "matched", "suggestion": ""}
  ],
  "missing_points": ["Query plans"],
  "extra_points": []
}"""


class FakeAnswerBank:
    def __init__(self, answers=None, error=None):
        self.answers = answers or []
        self.error = error
        self.queries = []

    async def retrieve_best_answers(self, query, k):
        self.queries.append((query, k))
        if self.error is not None:
            raise self.error
        return self.answers[:k]


def make_comparing_orchestrator(answer_bank):
    comparison_client = FakeLLMClient([COMPARISON_JSON])
    orchestrator, _ = make_orchestrator(
        comparison_agent=ComparisonAgent(make_llm_manager(comparison_client)),
        rag_service=answer_bank,
    )
    return orchestrator, comparison_client


def test_compare_with_best_answer_uses_closest_reference():
    answer_bank = FakeAnswerBank([
        SimilaritySearchResult(id=7, content="Add an index and read the query plan.", content_type="answer",
                               similarity=0.92),
    ])
    orchestrator, comparison_client = make_comparing_orchestrator(answer_bank)
    play(orchestrator, 1)

    result = asyncio.run(orchestrator.compare_with_best_answer())

    assert result.overall_match == 0.8
    assert result.comparisons[0].match_status is MatchStatus.MATCHED
    assert answer_bank.queries == [("Question 1?", 1)]
    prompt = comparison_client.calls[0][1]["content"]
    assert "User answer: Answer number 0" in prompt
    assert "Best answer: Add an index and read the query plan." in prompt


def test_compare_skipped_without_reference_answers():
    orchestrator, comparison_client = make_comparing_orchestrator(FakeAnswerBank())
    play(orchestrator, 1)

    assert asyncio.run(orchestrator.compare_with_best_answer()) is None
    assert comparison_client.calls == []


def test_compare_skipped_when_knowledge_base_fails():
    orchestrator, comparison_client = make_comparing_orchestrator(FakeAnswerBank(error=StorageError("database is locked")))
    play(orchestrator, 1)

    assert asyncio.run(orchestrator.compare_with_best_answer()) is None
    assert comparison_client.calls == []


def test_compare_needs_an_answered_question():
    answer_bank = FakeAnswerBank()
    orchestrator, _ = make_comparing_orchestrator(answer_bank)

    assert asyncio.run(orchestrator.compare_with_best_answer()) is None
    assert answer_bank.queries == []


def test_compare_not_configured():
    orchestrator, _ = make_orchestrator()
    play(orchestrator, 1)

    assert asyncio.run(orchestrator.compare_with_best_answer()) is None
