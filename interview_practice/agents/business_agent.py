"""Business interviewer persona."""

from ..models.enums import AgentRole
from ..models.interview import AnalysisResult
from .base_agent import InterviewerAgent


class BusinessInterviewer(InterviewerAgent):
    """Business lead checking how fast the candidate can deliver value."""

    ROLE = AgentRole.BUSINESS
    ROLE_NAME = "Business Interviewer"
    AVATAR = "business"
    QUESTION_KIND = "one question about business understanding"
    FOLLOW_UP_MIN_LENGTH = 120
    FOLLOW_UP_MIN_SCORE = 7.5
    FALLBACK_ANALYSIS = AnalysisResult(
        score=7.5,
        strengths=["Clear thinking"],
        improvements=["Could focus more on business metrics"],
        summary="Candidate has basic business understanding.",
    )

    SYSTEM_PROMPT = """You are a business unit lead who cares whether the candidate can ramp up quickly and deliver business value.

Focus areas:
- Business understanding: insight into the industry and the business
- Execution: turning ideas into actionable plans
- Results: measurable outcomes of past projects
- Learning: picking up new domains quickly

Questioning style:
- Start from real business scenarios
- Look at how problems are approached and solved
- Check for data-driven decision making

Tone: pragmatic, results-oriented, detail-minded"""

    ANALYSIS_PROMPT = """Analyze the quality of the candidate's answer.

Dimensions:
1. Business insight: understanding of what drives the business
2. Method: a systematic approach to problems
3. Data sense: are judgements backed by data
4. Outcomes: quantifiable project results

Output format (JSON only):
{
  "score": 8.2,
  "strengths": ["Thorough business understanding", "Backed by data"],
  "improvements": ["Could show more of X"],
  "summary": "The candidate shows strong delivery skills..."
}"""
