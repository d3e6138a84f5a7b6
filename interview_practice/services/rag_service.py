"""Retrieval facade: lazy, single-flight RAG initialization and category queries."""

import asyncio
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..models.enums import ContentType, RagState
from ..models.knowledge import KnowledgeStats, KnowledgeStatus, SimilaritySearchResult
from ..utils.exceptions import (
    RagInitializationError,
    RagInitializationTimeout,
    RagPreviouslyFailedError,
    RagUnavailableError,
)
from ..utils.logging import get_logger, log_performance
from .embedding_service import EmbeddingService
from .storage_manager import Repository, create_repository
from .vector_store import VectorStore


DEFAULT_INIT_TIMEOUT = 10.0
DEFAULT_CONTEXT_MAX_LENGTH = 2000


class RagService:
    """Single entry point to the knowledge engine.

    Nothing is loaded at construction. The first retrieval starts one shared
    initialization task (model load, store open, index build) that every
    concurrent caller awaits. A failed initialization is remembered: later
    calls fail fast until ``rebuild_index`` or ``reset`` is called.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        model_dir: Union[str, Path],
        repository: Optional[Repository] = None,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
        embedding_factory: Optional[Callable] = None,
        vector_store_factory: Optional[Callable] = None,
    ):
        """Initialize the facade.

        Args:
            db_path: SQLite database holding the knowledge vectors
            model_dir: Local embedding model directory
            repository: Repository used for cheap count queries
            init_timeout: Seconds allowed for initialization
            embedding_factory: Builds the embedder from ``model_dir``
            vector_store_factory: Builds the vector store from ``db_path``
        """
        self.db_path = str(db_path)
        self.model_dir = str(model_dir)
        self.init_timeout = init_timeout
        self.repository = repository or create_repository("sqlite", db_path=self.db_path)
        self._embedding_factory = embedding_factory or EmbeddingService
        self._vector_store_factory = vector_store_factory or VectorStore
        self.logger = get_logger("rag.service")

        self.state = RagState.UNINITIALIZED
        self._embedder = None
        self._store: Optional[VectorStore] = None
        self._init_task: Optional[asyncio.Future] = None
        self._failure: Optional[BaseException] = None

    # Lifecycle

    def _open_components(self):
        embedder = self._embedding_factory(self.model_dir)
        store = self._vector_store_factory(self.db_path)
        return embedder, store

    async def _load(self):
        opening = asyncio.ensure_future(asyncio.to_thread(self._open_components))
        try:
            embedder, store = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The worker thread cannot be stopped; close what it opens once it returns.
            opening.add_done_callback(self._discard_components)
            raise
        try:
            await store.build_index()
        except BaseException:
            store.close()
            raise
        return embedder, store

    def _discard_components(self, opening: asyncio.Future) -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        _, store = opening.result()
        store.close()
        self.logger.info("Closed vector store opened after initialization was abandoned")

    async def _initialize(self) -> None:
        start_time = time.time()
        try:
            embedder, store = await asyncio.wait_for(self._load(), timeout=self.init_timeout)
        except asyncio.TimeoutError as e:
            error = RagInitializationTimeout(
                f"RAG initialization timed out after {self.init_timeout}s", timeout_seconds=self.init_timeout
            )
            self._mark_failed(error)
            raise error from e
        except RagUnavailableError as e:
            self._mark_failed(e)
            raise
        except Exception as e:
            error = RagInitializationError(f"RAG initialization failed: {e}", details={"cause": type(e).__name__})
            self._mark_failed(error)
            raise error from e

        self._embedder = embedder
        self._store = store
        self.state = RagState.READY
        log_performance("rag_initialization", time.time() - start_time)
        self.logger.info("RAG service ready", extra={"vectors": store.index_size})

    def _mark_failed(self, error: BaseException) -> None:
        self.state = RagState.FAILED
        self._failure = error
        self.logger.error(f"RAG initialization failed: {error}")

    @staticmethod
    def _retrieve_task_exception(task: asyncio.Future) -> None:
        if not task.cancelled():
            task.exception()

    async def ensure_initialized(self) -> None:
        """Initialize the engine once, sharing the work between concurrent callers.

        Raises:
            RagPreviouslyFailedError: If an earlier initialization failed
            RagUnavailableError: If this initialization fails
        """
        if self.state is RagState.READY:
            return
        if self.state is RagState.FAILED:
            raise RagPreviouslyFailedError(details={"cause": str(self._failure)})

        if self._init_task is None:
            self.state = RagState.INITIALIZING
            self.logger.info("Starting RAG initialization")
            self._init_task = asyncio.ensure_future(self._initialize())
            self._init_task.add_done_callback(self._retrieve_task_exception)

        task = self._init_task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # reset() cancelled the shared initialization, not this caller.
            raise RagInitializationError("RAG initialization was cancelled by a reset") from None

    def reset(self) -> None:
        """Return to the uninitialized state, dropping any loaded components."""
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        if self._store is not None:
            self._store.close()
        self.state = RagState.UNINITIALIZED
        self._init_task = None
        self._failure = None
        self._embedder = None
        self._store = None

    def close(self) -> None:
        self.reset()
        self.repository.close()

    @property
    def vector_store(self) -> Optional[VectorStore]:
        return self._store

    # Knowledge operations

    async def embed_and_store(self, content_type: str, content: str, metadata: Optional[str] = None) -> int:
        """Embed a text and persist it. Searchable after the next index rebuild.

        Returns:
            Identifier of the stored record
        """
        await self.ensure_initialized()
        embedding = await self._embedder.embed(content)
        return await self._store.insert(content_type, content, embedding, metadata)

    async def retrieve_similar(self, content_type: Optional[str], query: str, k: int) -> List[SimilaritySearchResult]:
        """Embed the query and return the k most similar records of a category."""
        await self.ensure_initialized()
        embedding = await self._embedder.embed(query)
        results = await self._store.search(embedding, k, content_type)
        self.logger.debug(
            "Similarity search completed",
            extra={"content_type": content_type, "k": k, "hits": len(results)},
        )
        return results

    async def retrieve_similar_questions(self, query: str, k: int) -> List[SimilaritySearchResult]:
        return await self.retrieve_similar(ContentType.QUESTION.value, query, k)

    async def retrieve_best_answers(self, query: str, k: int) -> List[SimilaritySearchResult]:
        return await self.retrieve_similar(ContentType.ANSWER.value, query, k)

    async def retrieve_similar_jd(self, query: str, k: int) -> List[SimilaritySearchResult]:
        return await self.retrieve_similar(ContentType.JD.value, query, k)

    async def rebuild_index(self) -> int:
        """Rebuild the vector index from storage.

        Also clears a remembered initialization failure and tries again.

        Returns:
            Number of vectors in the new index
        """
        if self.state is RagState.FAILED:
            self.logger.info("Clearing previous RAG failure before rebuild")
            self.reset()

        was_ready = self.state is RagState.READY
        await self.ensure_initialized()
        if not was_ready:
            # Initialization has just built a fresh index.
            return self._store.index_size
        return await self._store.build_index()

    # Status (no initialization)

    async def is_empty(self) -> bool:
        count = await asyncio.to_thread(self.repository.get_knowledge_count)
        return count == 0

    async def get_status(self) -> KnowledgeStatus:
        counts = await asyncio.to_thread(self.repository.get_knowledge_count_by_type)
        return KnowledgeStatus(
            is_empty=sum(counts.values()) == 0,
            question_count=counts.get(ContentType.QUESTION.value, 0),
            answer_count=counts.get(ContentType.ANSWER.value, 0),
        )

    async def get_stats(self) -> KnowledgeStats:
        counts = await asyncio.to_thread(self.repository.get_knowledge_count_by_type)
        return KnowledgeStats(
            total_vectors=sum(counts.values()),
            question_count=counts.get(ContentType.QUESTION.value, 0),
            answer_count=counts.get(ContentType.ANSWER.value, 0),
            jd_count=counts.get(ContentType.JD.value, 0),
        )

    @staticmethod
    def build_context(results: List[SimilaritySearchResult], max_length: int = DEFAULT_CONTEXT_MAX_LENGTH) -> str:
        """Render results as a numbered list that fits in ``max_length`` characters.

        Entries are appended whole; the first entry that would overflow stops the list.
        """
        context = ""
        for idx, result in enumerate(results):
            entry = f"{idx + 1}. {result.content}\n"
            if len(context) + len(entry) > max_length:
                break
            context += entry
        return context
