"""Agent modules for the Interview Practice core."""

from .base_agent import BaseAgent, InterviewerAgent
from .business_agent import BusinessInterviewer
from .comparison_agent import ComparisonAgent
from .hr_agent import HRInterviewer
from .orchestrator_agent import AGENT_CLASSES, AnswerFeedback, InterviewOrchestrator, build_default_agents
from .scheduler import AgentScheduler
from .technical_agent import TechnicalInterviewer

__all__ = [
    "BaseAgent",
    "InterviewerAgent",
    "TechnicalInterviewer",
    "HRInterviewer",
    "BusinessInterviewer",
    "ComparisonAgent",
    "AgentScheduler",
    "AGENT_CLASSES",
    "AnswerFeedback",
    "InterviewOrchestrator",
    "build_default_agents",
]
