import asyncio
import time

import pytest

from interview_practice.models.enums import RagState
from interview_practice.models.knowledge import SimilaritySearchResult
from interview_practice.services.rag_service import RagService
from interview_practice.utils.exceptions import (
    ModelLoadError,
    RagInitializationError,
    RagInitializationTimeout,
    RagPreviouslyFailedError,
    RagUnavailableError,
)

from .fakes import FakeEmbedder


VECTORS = {
    "How does a B-tree index work?": [1.0, 0.0, 0.0, 0.1],
    "Explain database indexing": [0.9, 0.1, 0.0, 0.1],
    "Describe a team conflict": [0.0, 1.0, 0.2, 0.0],
    "Indexes speed up lookups": [1.0, 0.0, 0.1, 0.0],
}


def make_service(db_path, embedder=None, **kwargs):
    embedder = embedder or FakeEmbedder(VECTORS, dimension=4)
    kwargs.setdefault("embedding_factory", lambda model_dir: embedder)
    return RagService(db_path, "unused-model-dir", **kwargs)


def test_store_rebuild_and_retrieve(db_path):
    service = make_service(db_path)

    async def run():
        await service.embed_and_store("question", "How does a B-tree index work?")
        await service.embed_and_store("question", "Describe a team conflict")
        await service.embed_and_store("answer", "Indexes speed up lookups", '{"score": 8.5}')
        assert await service.rebuild_index() == 3
        questions = await service.retrieve_similar_questions("Explain database indexing", 1)
        answers = await service.retrieve_best_answers("Explain database indexing", 5)
        return questions, answers

    try:
        questions, answers = asyncio.run(run())
    finally:
        service.close()

    assert [r.content for r in questions] == ["How does a B-tree index work?"]
    assert [r.content for r in answers] == ["Indexes speed up lookups"]
    assert service.state is RagState.UNINITIALIZED


def test_initialization_is_single_flight(db_path):
    created = []

    def factory(model_dir):
        created.append(model_dir)
        time.sleep(0.05)
        return FakeEmbedder(dimension=4)

    service = make_service(db_path, embedding_factory=factory)

    async def run():
        await asyncio.gather(*(service.ensure_initialized() for _ in range(5)))

    try:
        asyncio.run(run())
        assert service.state is RagState.READY
    finally:
        service.close()

    assert created == ["unused-model-dir"]


def test_initialization_timeout_is_remembered(db_path):
    def slow_factory(model_dir):
        time.sleep(0.3)
        return FakeEmbedder(dimension=4)

    service = make_service(db_path, embedding_factory=slow_factory, init_timeout=0.05)

    async def run():
        with pytest.raises(RagInitializationTimeout):
            await service.ensure_initialized()
        with pytest.raises(RagPreviouslyFailedError):
            await service.ensure_initialized()

    try:
        asyncio.run(run())
        assert service.state is RagState.FAILED
    finally:
        service.close()


class RecordingStore:
    def __init__(self, db_path):
        self.db_path = db_path
        self.closed = False
        self.index_size = 0

    async def build_index(self):
        return 0

    def close(self):
        self.closed = True


def test_timed_out_initialization_closes_late_store(db_path):
    stores = []

    def slow_factory(model_dir):
        time.sleep(0.2)
        return FakeEmbedder(dimension=4)

    def store_factory(path):
        stores.append(RecordingStore(path))
        return stores[-1]

    service = make_service(
        db_path, embedding_factory=slow_factory, vector_store_factory=store_factory, init_timeout=0.05
    )

    async def run():
        with pytest.raises(RagInitializationTimeout):
            await service.ensure_initialized()
        await asyncio.sleep(0.5)

    try:
        asyncio.run(run())
    finally:
        service.close()

    assert len(stores) == 1
    assert stores[0].closed


def test_reset_during_initialization_fails_waiters(db_path):
    def slow_factory(model_dir):
        time.sleep(0.1)
        return FakeEmbedder(dimension=4)

    service = make_service(db_path, embedding_factory=slow_factory)

    async def run():
        waiter = asyncio.ensure_future(service.ensure_initialized())
        await asyncio.sleep(0.02)
        assert service.state is RagState.INITIALIZING
        service.reset()
        with pytest.raises(RagUnavailableError):
            await waiter
        await asyncio.sleep(0.2)

    try:
        asyncio.run(run())
        assert service.state is RagState.UNINITIALIZED
    finally:
        service.close()


def test_failure_is_sticky_until_rebuild(db_path):
    attempts = []

    def flaky_factory(model_dir):
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("model corrupted")
        return FakeEmbedder(dimension=4)

    service = make_service(db_path, embedding_factory=flaky_factory)

    async def run():
        with pytest.raises(RagInitializationError):
            await service.ensure_initialized()
        with pytest.raises(RagPreviouslyFailedError):
            await service.retrieve_similar_questions("anything", 3)
        return await service.rebuild_index()

    try:
        assert asyncio.run(run()) == 0
        assert service.state is RagState.READY
    finally:
        service.close()

    assert len(attempts) == 2


def test_model_load_error_passes_through(db_path):
    def missing_model(model_dir):
        raise ModelLoadError(f"Model directory not found: {model_dir}", model_dir=model_dir)

    service = make_service(db_path, embedding_factory=missing_model)

    try:
        with pytest.raises(ModelLoadError):
            asyncio.run(service.ensure_initialized())
    finally:
        service.close()


def test_reset_allows_retry(db_path):
    attempts = []

    def flaky_factory(model_dir):
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("disk busy")
        return FakeEmbedder(dimension=4)

    service = make_service(db_path, embedding_factory=flaky_factory)

    try:
        with pytest.raises(RagInitializationError):
            asyncio.run(service.ensure_initialized())
        service.reset()
        asyncio.run(service.ensure_initialized())
        assert service.state is RagState.READY
    finally:
        service.close()


def test_status_and_stats_without_initialization(db_path):
    service = make_service(db_path, embedding_factory=lambda model_dir: pytest.fail("should not load the model"))

    try:
        assert asyncio.run(service.is_empty())
        status = asyncio.run(service.get_status())
    finally:
        service.close()

    assert status.is_empty
    assert status.question_count == 0
    assert service.state is RagState.UNINITIALIZED


def test_stats_count_by_type(db_path):
    service = make_service(db_path)

    async def run():
        await service.embed_and_store("question", "How does a B-tree index work?")
        await service.embed_and_store("answer", "Indexes speed up lookups")
        await service.embed_and_store("jd", "Backend engineer")
        return await service.get_stats()

    try:
        stats = asyncio.run(run())
    finally:
        service.close()

    assert stats.total_vectors == 3
    assert (stats.question_count, stats.answer_count, stats.jd_count) == (1, 1, 1)


def _result(idx, content):
    return SimilaritySearchResult(id=idx, content=content, content_type="question", similarity=0.5)


def test_build_context_numbers_entries():
    context = RagService.build_context([_result(1, "first"), _result(2, "second")])

    assert context == "1. first\n2. second\n"


def test_build_context_stops_at_first_overflow():
    results = [_result(1, "a" * 10), _result(2, "b" * 50), _result(3, "c")]

    # "1. aaaaaaaaaa\n" is 14 characters; the second entry would overflow.
    assert RagService.build_context(results, max_length=20) == "1. " + "a" * 10 + "\n"


def test_build_context_empty():
    assert RagService.build_context([]) == ""
