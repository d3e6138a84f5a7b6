"""Seeds an empty knowledge base with generated questions and reference answers."""

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional

from ..models.enums import ContentType
from ..models.knowledge import BootstrapProgress, BootstrapResult
from ..utils.exceptions import InterviewPracticeError
from ..utils.logging import get_logger
from ..utils.retry import RetryPolicy
from .rag_service import RagService

if TYPE_CHECKING:
    from ..providers.siliconflow_provider import SiliconFlowClient


QUESTIONS_PER_CATEGORY = 10
BOOTSTRAP_ANSWER_SCORE = 8.5


@dataclass(frozen=True)
class JobTemplate:
    """A job description used to generate seed questions."""
    category: str
    name: str
    content: str


JOB_TEMPLATES: List[JobTemplate] = [
    JobTemplate(
        category="frontend",
        name="Senior Frontend Engineer",
        content="Responsibilities: build and maintain the frontend of core products; take part in frontend "
                "architecture design and optimisation. Requirements: 3+ years of frontend development; "
                "expert in Vue.js and React; TypeScript and ES6+; familiar with Webpack, Vite and similar tools.",
    ),
    JobTemplate(
        category="backend",
        name="Senior Backend Engineer",
        content="Responsibilities: design and implement backend systems; handle high concurrency and large "
                "data volumes. Requirements: 5+ years of backend development; expert in Java/Go/Python; "
                "deep understanding of databases; distributed systems design experience.",
    ),
    JobTemplate(
        category="pm",
        name="Product Manager",
        content="Responsibilities: own requirements analysis, design and launch of product modules; run user "
                "research and competitive analysis. Requirements: 2+ years as an internet product manager; "
                "Axure, Figma or similar prototyping tools; data analysis skills.",
    ),
    JobTemplate(
        category="fullstack",
        name="Full Stack Engineer",
        content="Responsibilities: develop both frontend and backend; take part in technical reviews and "
                "architecture design. Requirements: 4+ years of development; React/Vue and Node.js; "
                "database design and API development.",
    ),
    JobTemplate(
        category="qa",
        name="QA Engineer",
        content="Responsibilities: functional, performance and compatibility testing; design and build "
                "automated test frameworks. Requirements: 2+ years of testing; Python/Java programming; "
                "Selenium, JMeter or similar tools.",
    ),
    JobTemplate(
        category="devops",
        name="DevOps Engineer",
        content="Responsibilities: design and maintain infrastructure and operations systems; build CI/CD "
                "pipelines. Requirements: 3+ years in operations or DevOps; expert in Docker and Kubernetes; "
                "Python/Go/Bash.",
    ),
]

ProgressCallback = Callable[[BootstrapProgress], None]


class KnowledgeBootstrap:
    """Generates seed questions and reference answers for each job template.

    Every question and answer is embedded and stored; failures are recorded
    per item and the run continues. The index is rebuilt at the end.
    """

    def __init__(self, rag_service: RagService, generator: "SiliconFlowClient",
                 retry_policy: Optional[RetryPolicy] = None,
                 templates: Optional[List[JobTemplate]] = None,
                 questions_per_category: int = QUESTIONS_PER_CATEGORY):
        """Initialize the bootstrapper.

        Args:
            rag_service: Retrieval facade used to embed, store and index
            generator: Client providing ``generate_questions`` and ``generate_best_answer``
            retry_policy: Retry policy for generation calls
            templates: Job templates, defaults to the built-in set
            questions_per_category: Questions requested per template
        """
        self.rag_service = rag_service
        self.generator = generator
        self.retry_policy = retry_policy or RetryPolicy()
        self.templates = templates if templates is not None else JOB_TEMPLATES
        self.questions_per_category = questions_per_category
        self.logger = get_logger("rag.bootstrap")

    async def bootstrap(self, on_progress: Optional[ProgressCallback] = None) -> BootstrapResult:
        """Seed the knowledge base.

        Raises:
            RagUnavailableError: If the knowledge engine cannot be initialized
        """
        def report(current: int, total: int, status: str, category: str) -> None:
            if on_progress is not None:
                on_progress(BootstrapProgress(current=current, total=total, status=status, category=category))

        await self.rag_service.ensure_initialized()

        total_items = len(self.templates) * self.questions_per_category * 2
        result = BootstrapResult()
        current = 0

        for template in self.templates:
            self.logger.info(f"Generating questions for category: {template.category}")
            report(current, total_items, f"Generating questions for {template.name}...", template.category)

            try:
                questions = await self.retry_policy.execute(
                    lambda: self.generator.generate_questions("", template.content, self.questions_per_category)
                )
            except InterviewPracticeError as e:
                self.logger.error(f"Failed to generate questions for {template.category}: {e}")
                result.failed_items.append(f"{template.category}:questions")
                continue

            for idx, question in enumerate(questions):
                current += 1
                report(current, total_items, f"Storing {template.name} question {idx + 1}...", template.category)
                await self._store_question(template, idx, question, result)

                current += 1
                report(current, total_items, f"Generating {template.name} answer {idx + 1}...", template.category)
                await self._store_answer(template, idx, question, result)

        report(total_items, total_items, "Building vector index...", "index")
        try:
            await self.rag_service.rebuild_index()
        except InterviewPracticeError as e:
            self.logger.error(f"Failed to build index: {e}")
            result.failed_items.append("index_build")

        result.success = not result.failed_items
        if result.success:
            result.message = (
                f"Knowledge base initialized: {result.total_questions} questions, {result.total_answers} answers"
            )
        else:
            result.message = (
                f"Knowledge base initialized with {result.total_questions} questions, "
                f"{result.total_answers} answers, {len(result.failed_items)} failures"
            )
        self.logger.info(result.message)
        return result

    async def _store_question(self, template: JobTemplate, idx: int, question: str, result: BootstrapResult) -> None:
        metadata = json.dumps({"category": template.category, "jd_name": template.name}, ensure_ascii=False)
        try:
            await self.rag_service.embed_and_store(ContentType.QUESTION.value, question, metadata)
        except InterviewPracticeError as e:
            self.logger.error(f"Failed to store question: {e}")
            result.failed_items.append(f"{template.category}:q{idx}")
        else:
            result.total_questions += 1

    async def _store_answer(self, template: JobTemplate, idx: int, question: str, result: BootstrapResult) -> None:
        try:
            answer = await self.retry_policy.execute(
                lambda: self.generator.generate_best_answer(question, template.content)
            )
        except InterviewPracticeError as e:
            self.logger.error(f"Failed to generate answer: {e}")
            result.failed_items.append(f"{template.category}:a{idx}_gen")
            return

        metadata = json.dumps(
            {"category": template.category, "question": question, "score": BOOTSTRAP_ANSWER_SCORE},
            ensure_ascii=False,
        )
        try:
            await self.rag_service.embed_and_store(ContentType.ANSWER.value, answer, metadata)
        except InterviewPracticeError as e:
            self.logger.error(f"Failed to store answer: {e}")
            result.failed_items.append(f"{template.category}:a{idx}")
        else:
            result.total_answers += 1
