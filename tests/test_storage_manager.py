import asyncio

import pytest

from interview_practice.services.storage_manager import SQLiteRepository, create_repository
from interview_practice.services.vector_store import VectorStore
from interview_practice.utils.exceptions import StorageError


def test_create_sqlite_repository(db_path):
    repository = create_repository("sqlite", db_path=db_path)
    try:
        assert isinstance(repository, SQLiteRepository)
        assert repository.db_path == db_path
    finally:
        repository.close()


def test_unsupported_storage_type():
    with pytest.raises(StorageError):
        create_repository("postgres", db_path="unused")


def test_counts_before_any_vector_table(db_path):
    repository = create_repository("sqlite", db_path=db_path)
    try:
        assert repository.get_knowledge_count() == 0
        assert repository.get_knowledge_count_by_type() == {}
    finally:
        repository.close()


def test_counts_by_type(db_path):
    async def seed():
        store = await VectorStore.open(db_path)
        try:
            await store.insert("question", "q1", [1.0, 0.0])
            await store.insert("question", "q2", [0.0, 1.0])
            await store.insert("answer", "a1", [1.0, 1.0])
        finally:
            store.close()

    asyncio.run(seed())
    repository = create_repository("sqlite", db_path=db_path)
    try:
        assert repository.get_knowledge_count() == 3
        assert repository.get_knowledge_count_by_type() == {"question": 2, "answer": 1}
    finally:
        repository.close()
