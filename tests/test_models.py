import pytest
from pydantic import ValidationError as PydanticValidationError

from interview_practice.models.enums import AgentRole, ContentType, InterviewPhase, RotationStrategy
from interview_practice.models.interview import AnalysisResult, ConversationTurn, InterviewContext
from interview_practice.utils.exceptions import TurnAlreadyAnsweredError, ValidationError


def make_turn(question="Q?"):
    return ConversationTurn(role=AgentRole.HR, role_name="HR Interviewer", question=question)


def test_turn_accepts_answer_then_analysis_once():
    turn = make_turn()
    turn.attach_answer("A.")
    turn.attach_analysis(AnalysisResult(score=8))

    assert not turn.is_pending
    with pytest.raises(TurnAlreadyAnsweredError):
        turn.attach_answer("again")
    with pytest.raises(TurnAlreadyAnsweredError):
        turn.attach_analysis(AnalysisResult(score=5))


def test_analysis_requires_answer():
    with pytest.raises(ValidationError):
        make_turn().attach_analysis(AnalysisResult(score=8))


def test_pending_turn_only_checks_last_turn():
    answered = make_turn("first")
    answered.attach_answer("yes")
    context = InterviewContext(conversation_history=[make_turn("orphan"), answered])

    assert context.pending_turn() is None
    context.conversation_history.append(make_turn("second"))
    assert context.pending_turn().question == "second"


def test_score_bounds():
    with pytest.raises(PydanticValidationError):
        AnalysisResult(score=0)
    with pytest.raises(PydanticValidationError):
        AnalysisResult(score=10.5)


def test_phase_order():
    assert InterviewPhase.WARM_UP.next_phase is InterviewPhase.TECHNICAL
    assert InterviewPhase.QUESTIONS.next_phase is InterviewPhase.COMPLETED
    assert InterviewPhase.COMPLETED.next_phase is None
    assert InterviewPhase.COMPLETED.is_terminal


def test_enum_lookup_from_strings():
    assert InterviewPhase("warmup") is InterviewPhase.WARM_UP
    assert RotationStrategy("phase-based") is RotationStrategy.PHASE_BASED
    assert ContentType("Question") is ContentType.QUESTION
    assert AgentRole("AgentRole.BUSINESS") is AgentRole.BUSINESS
