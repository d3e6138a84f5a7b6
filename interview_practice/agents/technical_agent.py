"""Technical interviewer persona."""

from typing import List, Optional

from ..models.enums import AgentRole
from ..models.interview import AnalysisResult, InterviewContext
from ..services.llm_manager import LLMManager
from ..services.rag_service import RagService
from ..utils.exceptions import InterviewPracticeError
from .base_agent import DEFAULT_AGENT_MODEL, InterviewerAgent


REFERENCE_QUESTION_COUNT = 3


class TechnicalInterviewer(InterviewerAgent):
    """Probes technical depth, seeded with similar questions from the knowledge base."""

    ROLE = AgentRole.TECHNICAL
    ROLE_NAME = "Technical Interviewer"
    AVATAR = "tech"
    QUESTION_KIND = "one technical interview question"
    FOLLOW_UP_MIN_LENGTH = 100
    FOLLOW_UP_MIN_SCORE = 7.0
    FALLBACK_ANALYSIS = AnalysisResult(
        score=7.0,
        strengths=["Complete answer"],
        improvements=["Could expand in more detail"],
        summary="Answer is basically on point with room to improve.",
    )

    SYSTEM_PROMPT = """You are a senior technical interviewer with more than 10 years of engineering management experience.

Focus areas:
- Technical depth: understanding of core principles
- Problem solving: analysing problems and designing solutions
- System design: architectural thinking and technology choices
- Code quality: coding standards and best practices

Questioning style:
- Start from fundamentals and go deeper into underlying principles
- Follow up on implementation details and edge cases
- Tie questions to realistic scenarios

Tone: professional, rigorous, in depth"""

    ANALYSIS_PROMPT = """Analyze the quality of the candidate's answer.

Dimensions:
1. Technical accuracy: is the answer correct
2. Depth and breadth: how deep and how complete the understanding is
3. Logic: is the answer clear and well organised
4. Practical experience: is it backed by real project experience

Output format (JSON only):
{
  "score": 8.5,
  "strengths": ["Deep technical understanding", "Hands-on experience"],
  "improvements": ["Could explain X in more detail"],
  "summary": "The candidate has a solid grasp of the technology..."
}"""

    def __init__(self, llm_manager: LLMManager, rag_service: Optional[RagService] = None,
                 model: str = DEFAULT_AGENT_MODEL, **kwargs):
        super().__init__(llm_manager, model=model, **kwargs)
        self.rag_service = rag_service

    async def _reference_questions(self, job_description: str) -> List[str]:
        if self.rag_service is None:
            return []
        try:
            results = await self.rag_service.retrieve_similar_questions(job_description, REFERENCE_QUESTION_COUNT)
        except InterviewPracticeError as e:
            self.logger.warning(f"Knowledge base unavailable, asking without references: {e}")
            return []
        return [result.content for result in results]

    async def build_question_prompt(self, context: InterviewContext) -> str:
        prompt = await super().build_question_prompt(context)
        references = await self._reference_questions(context.job_description)
        if references:
            reference_block = "\n".join(f"- {question}" for question in references)
            prompt = f"Reference question bank:\n{reference_block}\n\n{prompt}"
        return prompt
