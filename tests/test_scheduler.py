import asyncio
import random

import pytest

from interview_practice.agents.business_agent import BusinessInterviewer
from interview_practice.agents.hr_agent import HRInterviewer
from interview_practice.agents.scheduler import AgentScheduler
from interview_practice.agents.technical_agent import TechnicalInterviewer
from interview_practice.models.enums import AgentRole, InterviewPhase, RotationStrategy
from interview_practice.models.interview import InterviewContext
from interview_practice.utils.exceptions import AgentError, NoPendingTurnError, UpstreamCallFailedError

from .fakes import FakeLLMClient, analysis_json, make_llm_manager


def make_agents(client):
    manager = make_llm_manager(client)
    return [TechnicalInterviewer(manager), HRInterviewer(manager), BusinessInterviewer(manager)]


def test_requires_agents():
    with pytest.raises(AgentError):
        AgentScheduler([])


def test_fixed_order_rotation_wraps_around():
    scheduler = AgentScheduler(make_agents(FakeLLMClient()))

    roles = [scheduler.current_agent().role] + [scheduler.next_agent().role for _ in range(3)]

    assert roles == [AgentRole.TECHNICAL, AgentRole.HR, AgentRole.BUSINESS, AgentRole.TECHNICAL]


def test_random_rotation_stays_in_range():
    scheduler = AgentScheduler(make_agents(FakeLLMClient()), strategy=RotationStrategy.RANDOM, rng=random.Random(7))

    for _ in range(20):
        assert scheduler.next_agent() in scheduler.agents


def test_phase_based_selection():
    scheduler = AgentScheduler(make_agents(FakeLLMClient()), strategy=RotationStrategy.PHASE_BASED)

    assert scheduler.select_by_phase(InterviewPhase.WARM_UP).role is AgentRole.HR
    assert scheduler.select_by_phase(InterviewPhase.TECHNICAL).role is AgentRole.TECHNICAL
    assert scheduler.select_by_phase(InterviewPhase.BUSINESS).role is AgentRole.BUSINESS
    # Phase-based rotation does not move on next_agent.
    assert scheduler.next_agent().role is AgentRole.BUSINESS


def test_missing_phase_role_falls_back_to_first_agent():
    manager = make_llm_manager(FakeLLMClient())
    scheduler = AgentScheduler([TechnicalInterviewer(manager)], strategy=RotationStrategy.PHASE_BASED)

    assert scheduler.select_by_phase(InterviewPhase.WARM_UP).role is AgentRole.TECHNICAL


def test_execute_turn_appends_pending_turn():
    scheduler = AgentScheduler(make_agents(FakeLLMClient(['"Why this role?"'])))
    scheduler.select_by_phase(InterviewPhase.WARM_UP)
    context = InterviewContext()

    turn = asyncio.run(scheduler.execute_turn(context))

    assert turn.question == "Why this role?"
    assert turn.role is AgentRole.HR
    assert turn.role_name == "HR Interviewer"
    assert context.pending_turn() is turn


def test_second_answer_without_new_question_fails():
    client = FakeLLMClient(["Question one?", analysis_json(6)])
    scheduler = AgentScheduler(make_agents(client))
    context = InterviewContext()

    async def run():
        await scheduler.execute_turn(context)
        analysis = await scheduler.process_answer(context, "My first answer")
        with pytest.raises(NoPendingTurnError):
            await scheduler.process_answer(context, "My second answer")
        return analysis

    analysis = asyncio.run(run())

    assert analysis.score == 6
    turn = context.conversation_history[0]
    assert turn.answer == "My first answer"
    assert turn.analysis == analysis


def test_answer_before_any_question_fails():
    scheduler = AgentScheduler(make_agents(FakeLLMClient()))

    with pytest.raises(NoPendingTurnError):
        asyncio.run(scheduler.process_answer(InterviewContext(), "answer"))


def test_turn_is_analyzed_by_its_own_interviewer():
    client = FakeLLMClient(["Tell me about a conflict.", analysis_json(7)])
    scheduler = AgentScheduler(make_agents(client))
    scheduler.select_by_phase(InterviewPhase.WARM_UP)
    context = InterviewContext()

    async def run():
        await scheduler.execute_turn(context)
        scheduler.next_agent()
        await scheduler.process_answer(context, "We talked it through.")

    asyncio.run(run())

    assert client.calls[1][0]["content"] == HRInterviewer.ANALYSIS_PROMPT


def test_failed_analysis_leaves_turn_pending():
    error = UpstreamCallFailedError("Request to SiliconFlow API timeout after 60s", provider_name="fake")
    client = FakeLLMClient(["Question?", error, analysis_json(8)])
    scheduler = AgentScheduler(make_agents(client))
    context = InterviewContext()

    async def run():
        await scheduler.execute_turn(context)
        with pytest.raises(UpstreamCallFailedError):
            await scheduler.process_answer(context, "answer")
        assert context.pending_turn() is not None
        return await scheduler.process_answer(context, "answer")

    assert asyncio.run(run()).score == 8
    assert context.conversation_history[0].answer == "answer"


def test_failed_question_generation_appends_nothing():
    error = UpstreamCallFailedError("API request failed with status 500: boom", provider_name="fake")
    scheduler = AgentScheduler(make_agents(FakeLLMClient([error])))
    context = InterviewContext()

    with pytest.raises(UpstreamCallFailedError):
        asyncio.run(scheduler.execute_turn(context))

    assert context.conversation_history == []
