import asyncio
import threading

import pytest

from interview_practice.services.vector_store import VectorStore
from interview_practice.utils.exceptions import (
    DataIntegrityError,
    EmbeddingDimensionError,
    IndexNotBuiltError,
    ValidationError,
)


@pytest.fixture
def store(db_path):
    store = VectorStore(db_path)
    yield store
    store.close()


def populate(store):
    async def run():
        ids = {}
        ids["q_close"] = await store.insert("question", "close question", [1.0, 0.1, 0.0])
        ids["q_mid"] = await store.insert("question", "middle question", [1.0, 1.0, 0.0])
        ids["q_far"] = await store.insert("question", "far question", [0.0, 0.1, 1.0])
        ids["a_close"] = await store.insert("answer", "close answer", [1.0, 0.0, 0.0], '{"score": 8.5}')
        await store.build_index()
        return ids

    return asyncio.run(run())


def test_search_before_build_fails(store):
    async def run():
        await store.insert("question", "q", [1.0, 0.0])
        await store.search([1.0, 0.0], 3)

    with pytest.raises(IndexNotBuiltError):
        asyncio.run(run())


def test_search_returns_top_k_of_requested_type(store):
    ids = populate(store)

    results = asyncio.run(store.search([1.0, 0.0, 0.0], 2, content_type="question"))

    assert [r.id for r in results] == [ids["q_close"], ids["q_mid"]]
    assert all(r.content_type == "question" for r in results)
    assert results[0].similarity >= results[1].similarity
    assert results[0].similarity == pytest.approx(1.0, abs=0.01)


def test_search_without_filter_spans_types(store):
    ids = populate(store)

    results = asyncio.run(store.search([1.0, 0.0, 0.0], 10))

    assert len(results) == 4
    assert results[0].id == ids["a_close"]
    assert results[0].metadata == '{"score": 8.5}'
    similarities = [r.similarity for r in results]
    assert similarities == sorted(similarities, reverse=True)


def test_non_positive_k_returns_nothing(store):
    populate(store)

    assert asyncio.run(store.search([1.0, 0.0, 0.0], 0)) == []


def test_empty_store_builds_empty_index(store):
    assert asyncio.run(store.build_index()) == 0
    assert store.is_built
    assert asyncio.run(store.search([1.0, 0.0], 5)) == []


def test_insert_is_not_searchable_until_rebuild(store):
    populate(store)

    async def run():
        new_id = await store.insert("question", "exact question", [0.0, 0.0, 1.0])
        before = await store.search([0.0, 0.0, 1.0], 1, "question")
        assert store.rebuild_required
        await store.build_index()
        after = await store.search([0.0, 0.0, 1.0], 1, "question")
        return new_id, before, after

    new_id, before, after = asyncio.run(run())

    assert before[0].id != new_id
    assert after[0].id == new_id


def test_deleted_rows_are_skipped_before_rebuild(store):
    ids = populate(store)

    async def run():
        pending = await store.delete(ids["q_close"])
        results = await store.search([1.0, 0.0, 0.0], 3, "question")
        return pending, results

    pending, results = asyncio.run(run())

    assert pending.deleted
    assert ids["q_close"] not in [r.id for r in results]
    assert store.index_size == 4
    assert store.rebuild_required

    generation = store.generation
    assert asyncio.run(pending.resolve()) == 3
    assert store.generation == generation + 1
    assert not store.rebuild_required


def test_get_and_counts(store):
    ids = populate(store)

    entry = asyncio.run(store.get(ids["a_close"]))

    assert entry.content == "close answer"
    assert entry.embedding == pytest.approx([1.0, 0.0, 0.0])
    assert asyncio.run(store.count()) == 4
    assert asyncio.run(store.count_by_type("question")) == 3
    assert asyncio.run(store.get(9999)) is None


def test_mixed_dimensions_fail_build(store):
    async def run():
        await store.insert("question", "short", [1.0, 0.0])
        await store.insert("question", "long", [1.0, 0.0, 0.0])
        await store.build_index()

    with pytest.raises(DataIntegrityError):
        asyncio.run(run())
    assert not store.is_built


def test_query_dimension_mismatch(store):
    populate(store)

    with pytest.raises(EmbeddingDimensionError):
        asyncio.run(store.search([1.0, 0.0], 2))


def test_empty_embedding_rejected(store):
    with pytest.raises(ValidationError):
        asyncio.run(store.insert("question", "text", []))


def test_records_survive_reopen(db_path):
    first = VectorStore(db_path)
    asyncio.run(first.insert("jd", "Backend role", [0.5, 0.5]))
    first.close()

    second = VectorStore(db_path)
    try:
        assert asyncio.run(second.build_index()) == 1
        results = asyncio.run(second.search([0.5, 0.5], 1, "jd"))
    finally:
        second.close()

    assert results[0].content == "Backend role"


def test_overlapping_builds_publish_newest_snapshot(store):
    first_reading = threading.Event()
    release_first = threading.Event()
    original_fetchall = store._fetchall
    row_reads = []

    def fetchall(sql, params=()):
        rows = original_fetchall(sql, params)
        if sql.startswith("SELECT id, embedding"):
            row_reads.append(len(rows))
            if len(row_reads) == 1:
                first_reading.set()
                release_first.wait(5)
        return rows

    store._fetchall = fetchall

    async def run():
        await store.insert("question", "first", [1.0, 0.0])
        first_build = asyncio.ensure_future(store.build_index())
        await asyncio.to_thread(first_reading.wait, 5)

        await store.insert("question", "second", [0.0, 1.0])
        second_size = await store.build_index()
        release_first.set()
        first_size = await first_build
        results = await store.search([0.0, 1.0], 5)
        return first_size, second_size, results

    first_size, second_size, results = asyncio.run(run())

    assert row_reads == [1, 2]
    assert second_size == 2
    assert first_size == 2
    assert store.index_size == 2
    assert store.generation == 2
    assert not store.rebuild_required
    assert results[0].content == "second"
