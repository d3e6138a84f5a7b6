import pytest

from interview_practice.models.enums import AgentRole, InterviewPhase
from interview_practice.models.interview import AnalysisResult, PhaseConfig
from interview_practice.services.state_machine import InterviewStateMachine
from interview_practice.utils.exceptions import ConfigurationError


def analysis(score):
    return AnalysisResult(score=score, summary="")


def test_starts_in_warm_up():
    machine = InterviewStateMachine()

    assert machine.current_phase is InterviewPhase.WARM_UP
    assert machine.current_primary_role() is AgentRole.HR
    assert not machine.is_completed


def test_second_question_in_warm_up_forces_technical():
    machine = InterviewStateMachine()

    assert machine.record_question() is None
    assert machine.record_question() is InterviewPhase.TECHNICAL
    assert machine.current_phase is InterviewPhase.TECHNICAL
    assert machine.progress().phase_question_count == 0
    assert machine.progress().total_question_count == 2


def test_score_below_threshold_never_advances():
    machine = InterviewStateMachine()
    machine.record_question()

    assert machine.maybe_advance(analysis(7.9)) is None
    assert machine.current_phase is InterviewPhase.WARM_UP


def test_threshold_score_advances_once_minimum_met():
    machine = InterviewStateMachine()
    machine.record_question()

    assert machine.maybe_advance(analysis(8.0)) is InterviewPhase.TECHNICAL


def test_high_score_does_not_advance_before_minimum():
    machine = InterviewStateMachine()
    machine.advance_phase()
    machine.record_question()

    # Technical needs three questions before an early advance.
    assert machine.maybe_advance(analysis(10)) is None
    assert machine.current_phase is InterviewPhase.TECHNICAL


def test_custom_advance_score():
    machine = InterviewStateMachine(advance_score=9.0)
    machine.record_question()

    assert machine.maybe_advance(analysis(8.5)) is None
    assert machine.maybe_advance(analysis(9.0)) is InterviewPhase.TECHNICAL


def test_phases_run_to_completion_in_order():
    machine = InterviewStateMachine()
    visited = [machine.current_phase]
    while not machine.is_completed:
        visited.append(machine.advance_phase())

    assert visited == [
        InterviewPhase.WARM_UP,
        InterviewPhase.TECHNICAL,
        InterviewPhase.BEHAVIORAL,
        InterviewPhase.BUSINESS,
        InterviewPhase.QUESTIONS,
        InterviewPhase.COMPLETED,
    ]
    assert machine.advance_phase() is None
    assert machine.current_primary_role() is None


def test_completed_phase_keeps_counting_without_transition():
    machine = InterviewStateMachine()
    while not machine.is_completed:
        machine.advance_phase()

    assert machine.record_question() is None
    assert machine.maybe_advance(analysis(10)) is None
    assert machine.progress().is_completed
    assert machine.progress().total_question_count == 1


def test_quota_driven_run_visits_every_phase():
    machine = InterviewStateMachine()
    questions = 0
    while not machine.is_completed:
        machine.record_question()
        questions += 1

    # Sum of the default max quotas.
    assert questions == 2 + 5 + 3 + 3 + 2


def test_duplicate_phase_rejected():
    config = PhaseConfig(phase=InterviewPhase.WARM_UP, min_questions=1, max_questions=2, primary_role=AgentRole.HR)

    with pytest.raises(ConfigurationError):
        InterviewStateMachine(phase_configs=[config, config])


def test_min_above_max_rejected():
    config = PhaseConfig(phase=InterviewPhase.WARM_UP, min_questions=3, max_questions=2, primary_role=AgentRole.HR)

    with pytest.raises(ConfigurationError):
        InterviewStateMachine(phase_configs=[config])
