"""Answer comparison agent."""

from pydantic import ValidationError as PydanticValidationError

from ..models.enums import MatchStatus
from ..models.interview import ComparisonResult, PointComparison
from ..services.llm_manager import LLMManager
from ..utils.exceptions import StructuredOutputParseError
from .base_agent import DEFAULT_AGENT_MODEL, DEFAULT_AGENT_TEMPERATURE, BaseAgent, parse_json_object


def fallback_comparison() -> ComparisonResult:
    return ComparisonResult(
        overall_match=0.7,
        comparisons=[
            PointComparison(
                aspect="Overall",
                best_answer_point="Reference answer is complete",
                user_answer_point="User answer covers the basics",
                match_status=MatchStatus.PARTIAL,
                suggestion="Could expand in more detail",
            )
        ],
        missing_points=["Some details not mentioned"],
        extra_points=[],
    )


class ComparisonAgent(BaseAgent):
    """Compares a user's answer with a reference answer point by point."""

    SYSTEM_PROMPT = """You are an expert in analysing interview answers. Compare the user's answer with the best answer point by point.

Output format (JSON only):
{
  "overall_match": 0.75,
  "comparisons": [
    {
      "aspect": "Technical accuracy",
      "best_answer_point": "Key point in the best answer",
      "user_answer_point": "Matching content in the user's answer",
      "match_status": "matched|partial|missing",
      "suggestion": "How to improve"
    }
  ],
  "missing_points": ["Key points the user missed"],
  "extra_points": ["Valuable points the user added"]
}"""

    def __init__(self, llm_manager: LLMManager, model: str = DEFAULT_AGENT_MODEL,
                 temperature: float = DEFAULT_AGENT_TEMPERATURE):
        super().__init__("ComparisonAgent")
        self.llm_manager = llm_manager
        self.model = model
        self.temperature = temperature

    async def compare(self, question: str, user_answer: str, best_answer: str) -> ComparisonResult:
        """Compare ``user_answer`` with ``best_answer`` for ``question``.

        Unparseable responses yield a fixed partial-match result.
        """
        self.log_operation("compare", {"answer_length": len(user_answer)})
        prompt = (
            f"Question: {question}\n\nUser answer: {user_answer}\n\nBest answer: {best_answer}\n\n"
            "Compare them and output the result as JSON."
        )
        response = await self.llm_manager.prompt(
            self.SYSTEM_PROMPT, prompt, model=self.model, temperature=self.temperature
        )

        try:
            return ComparisonResult(**parse_json_object(response))
        except (StructuredOutputParseError, PydanticValidationError, TypeError) as e:
            self.logger.warning(f"Comparison response not usable, using fallback: {e}")
            return fallback_comparison()
