"""Base agent interfaces for the Interview Practice core."""

import json
import re
from abc import ABC
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models.enums import AgentRole
from ..models.interview import AnalysisResult, InterviewContext
from ..services.llm_manager import LLMManager
from ..utils.exceptions import StructuredOutputParseError
from ..utils.logging import get_correlation_id, get_logger


DEFAULT_AGENT_MODEL = "Pro/Qwen/Qwen2.5-7B-Instruct"
DEFAULT_AGENT_TEMPERATURE = 0.7

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of a model response.

    Accepts a bare object, a fenced code block, or the span between the
    first ``{`` and the last ``}``.

    Raises:
        StructuredOutputParseError: If no JSON object can be parsed
    """
    candidates = [text.strip()]
    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise StructuredOutputParseError("Response does not contain a JSON object", raw_response=text[:200])


def clean_question(text: str) -> str:
    """Trim whitespace and wrapping quotes from a generated question."""
    return text.strip().strip('"').strip("“”").strip()


class BaseAgent(ABC):
    """Base interface for all agents."""

    def __init__(self, agent_name: str):
        """Initialize the base agent.

        Args:
            agent_name: Name of the agent for logging and identification
        """
        self.agent_name = agent_name
        self.logger = get_logger(f"agent.{agent_name}")

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log agent operation with correlation ID."""
        extra = {"correlation_id": get_correlation_id(), "agent": self.agent_name}
        if details:
            extra.update(details)

        self.logger.info(f"Operation: {operation}", extra=extra)

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """Log agent error with correlation ID."""
        extra = {"correlation_id": get_correlation_id(), "agent": self.agent_name}
        if context:
            extra.update(context)

        self.logger.error(f"Error in {self.agent_name}: {error}", extra=extra, exc_info=True)


class InterviewerAgent(BaseAgent):
    """Common contract of the interviewer personas.

    Subclasses set the class attributes below; the question prompt can be
    extended by overriding ``build_question_prompt``.
    """

    ROLE: AgentRole
    ROLE_NAME: str
    AVATAR: str
    SYSTEM_PROMPT: str
    ANALYSIS_PROMPT: str
    QUESTION_KIND: str
    FOLLOW_UP_MIN_LENGTH: int
    FOLLOW_UP_MIN_SCORE: float
    FALLBACK_ANALYSIS: AnalysisResult

    def __init__(self, llm_manager: LLMManager, model: str = DEFAULT_AGENT_MODEL,
                 temperature: float = DEFAULT_AGENT_TEMPERATURE):
        """Initialize the interviewer.

        Args:
            llm_manager: Language model access with retry and deduplication
            model: Model used for this persona's calls
            temperature: Sampling temperature
        """
        super().__init__(self.__class__.__name__)
        self.llm_manager = llm_manager
        self.model = model
        self.temperature = temperature

    @property
    def role(self) -> AgentRole:
        return self.ROLE

    @property
    def role_name(self) -> str:
        return self.ROLE_NAME

    @property
    def avatar(self) -> str:
        return self.AVATAR

    async def build_question_prompt(self, context: InterviewContext) -> str:
        """Build the user prompt asking for the next question."""
        prompt = (
            f"Based on the following job description and candidate resume, ask {self.QUESTION_KIND}.\n\n"
            f"Job description: {context.job_description}\n\n"
            f"Resume: {context.resume}\n"
        )
        asked = [turn.question for turn in context.conversation_history]
        if asked:
            prompt += "\nQuestions already asked (do not repeat them):\n" + "\n".join(f"- {q}" for q in asked) + "\n"
        prompt += (
            "\nRequirements:\n"
            "1. Output only the question itself, with no lead-in, evaluation criteria or internal notes\n"
            "2. Use plain text, no Markdown (no **bold**, no # headings)\n"
            "3. Ask it directly in the interviewer's voice, concise and natural like a real interview"
        )
        return prompt

    async def generate_question(self, context: InterviewContext) -> str:
        """Generate the next question for this persona.

        Returns:
            Question text, trimmed of surrounding whitespace and quotes

        Raises:
            UpstreamCallFailedError: If the language model call fails after retries
        """
        self.log_operation("generate_question", {"phase": context.current_phase.name})
        prompt = await self.build_question_prompt(context)
        try:
            response = await self.llm_manager.prompt(
                self.SYSTEM_PROMPT, prompt, model=self.model, temperature=self.temperature
            )
        except Exception as e:
            self.log_error(e, {"operation": "generate_question"})
            raise
        return clean_question(response)

    async def analyze_answer(self, question: str, answer: str, context: InterviewContext) -> AnalysisResult:
        """Score an answer.

        A response that is not a valid analysis object yields this persona's
        fallback analysis; upstream failures propagate.
        """
        self.log_operation("analyze_answer", {"answer_length": len(answer)})
        prompt = (
            f"Question: {question}\n\nCandidate answer: {answer}\n\n"
            "Analyze the quality of the answer and output the result as JSON."
        )
        try:
            response = await self.llm_manager.prompt(
                self.ANALYSIS_PROMPT, prompt, model=self.model, temperature=self.temperature
            )
        except Exception as e:
            self.log_error(e, {"operation": "analyze_answer"})
            raise

        try:
            return AnalysisResult(**parse_json_object(response))
        except (StructuredOutputParseError, PydanticValidationError, TypeError) as e:
            self.logger.warning(
                f"Analysis response not usable, using fallback: {e}",
                extra={"agent": self.agent_name, "response_preview": response[:200]},
            )
            return self.FALLBACK_ANALYSIS

    def should_follow_up(self, answer: str, analysis: AnalysisResult) -> bool:
        """Advise a follow-up when the answer is short or scored low."""
        return len(answer) < self.FOLLOW_UP_MIN_LENGTH or analysis.score < self.FOLLOW_UP_MIN_SCORE
