import asyncio
import json

from interview_practice.services.knowledge_bootstrap import JobTemplate, KnowledgeBootstrap
from interview_practice.utils.exceptions import StructuredOutputParseError, UpstreamCallFailedError
from interview_practice.utils.retry import RetryPolicy


class RecordingRag:
    def __init__(self):
        self.initialized = False
        self.stored = []
        self.rebuilds = 0

    async def ensure_initialized(self):
        self.initialized = True

    async def embed_and_store(self, content_type, content, metadata=None):
        self.stored.append((content_type, content, metadata))
        return len(self.stored)

    async def rebuild_index(self):
        self.rebuilds += 1
        return len(self.stored)


class FakeGenerator:
    def __init__(self, questions, failing_categories=(), failing_answers=()):
        self.questions = questions
        self.failing_categories = set(failing_categories)
        self.failing_answers = set(failing_answers)

    async def generate_questions(self, resume, job_description, count):
        if job_description in self.failing_categories:
            raise StructuredOutputParseError("Failed to extract questions from response")
        return self.questions[:count]

    async def generate_best_answer(self, question, job_description):
        if question in self.failing_answers:
            raise UpstreamCallFailedError("API request failed with status 500: boom", provider_name="fake")
        return f"Answer to {question}"


async def no_sleep(delay):
    return None


TEMPLATES = [
    JobTemplate(category="backend", name="Backend Engineer", content="backend jd"),
    JobTemplate(category="qa", name="QA Engineer", content="qa jd"),
]


def test_bootstrap_stores_questions_and_answers():
    rag = RecordingRag()
    generator = FakeGenerator(["Q1?", "Q2?"])
    progress = []
    bootstrap = KnowledgeBootstrap(rag, generator, retry_policy=RetryPolicy(max_retries=1, sleep=no_sleep),
                                   templates=TEMPLATES, questions_per_category=2)

    result = asyncio.run(bootstrap.bootstrap(progress.append))

    assert rag.initialized
    assert result.success
    assert (result.total_questions, result.total_answers) == (4, 4)
    assert rag.rebuilds == 1
    assert progress[-1].current == progress[-1].total == 8

    answer_metadata = json.loads(rag.stored[1][2])
    assert rag.stored[1][0] == "answer"
    assert answer_metadata == {"category": "backend", "question": "Q1?", "score": 8.5}


def test_bootstrap_records_failures_and_continues():
    rag = RecordingRag()
    generator = FakeGenerator(["Q1?", "Q2?"], failing_categories={"qa jd"}, failing_answers={"Q2?"})
    bootstrap = KnowledgeBootstrap(rag, generator, retry_policy=RetryPolicy(max_retries=2, sleep=no_sleep),
                                   templates=TEMPLATES, questions_per_category=2)

    result = asyncio.run(bootstrap.bootstrap())

    assert not result.success
    assert result.failed_items == ["backend:a1_gen", "qa:questions"]
    assert (result.total_questions, result.total_answers) == (2, 1)
    assert rag.rebuilds == 1
