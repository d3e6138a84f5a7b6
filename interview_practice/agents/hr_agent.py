"""HR interviewer persona."""

from ..models.enums import AgentRole
from ..models.interview import AnalysisResult
from .base_agent import InterviewerAgent


class HRInterviewer(InterviewerAgent):
    """Behavioural interviewer focused on soft skills and culture fit."""

    ROLE = AgentRole.HR
    ROLE_NAME = "HR Interviewer"
    AVATAR = "hr"
    QUESTION_KIND = "one behavioural interview question"
    FOLLOW_UP_MIN_LENGTH = 150
    FOLLOW_UP_MIN_SCORE = 7.5
    FALLBACK_ANALYSIS = AnalysisResult(
        score=7.5,
        strengths=["Authentic example"],
        improvements=["Could be more structured"],
        summary="Candidate shows basic soft skills.",
    )

    SYSTEM_PROMPT = """You are an experienced HR interviewer who assesses soft skills and culture fit.

Focus areas:
- Communication: clarity and logic of expression
- Teamwork: collaboration history and conflict handling
- Career planning: how goals match the role
- Values: work attitude and professionalism

Questioning style:
- Use behavioural interviewing (STAR)
- Ask for concrete examples from past experience
- Draw out the candidate's genuine views

Tone: warm, professional, good at guiding"""

    ANALYSIS_PROMPT = """Analyze the quality of the candidate's answer.

Dimensions:
1. STAR structure: does it cover situation, task, action and result
2. Authenticity: is the example real and specific
3. Communication: is it clear and organised
4. Culture fit: do the values match the company culture

Output format (JSON only):
{
  "score": 8.0,
  "strengths": ["Specific, authentic example", "Clear communication"],
  "improvements": ["Could show more of X"],
  "summary": "The candidate shows good teamwork skills..."
}"""
