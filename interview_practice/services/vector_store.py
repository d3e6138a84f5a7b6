"""SQLite-backed vector store with an in-memory nearest-neighbour index."""

import asyncio
import sqlite3
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.neighbors import NearestNeighbors

from ..models.knowledge import KnowledgeEntry, SimilaritySearchResult
from ..utils.exceptions import (
    DataIntegrityError,
    EmbeddingDimensionError,
    IndexNotBuiltError,
    StorageError,
    ValidationError,
)
from ..utils.logging import get_logger, log_performance


MIN_CANDIDATES = 50

_SCHEMA = """
CREATE TABLE IF NOT EXISTS knowledge_vectors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content_type TEXT NOT NULL,
    content TEXT NOT NULL,
    embedding BLOB NOT NULL,
    metadata TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_knowledge_vectors_type ON knowledge_vectors(content_type);
"""


@dataclass(frozen=True)
class _IndexSnapshot:
    """Immutable index generation. Replaced wholesale on every build."""

    generation: int
    ids: np.ndarray
    nn: Optional[NearestNeighbors]
    dimension: Optional[int]

    @property
    def size(self) -> int:
        return int(self.ids.shape[0])


@dataclass
class RebuildPending:
    """Returned by ``VectorStore.delete``: the index still serves the old generation."""

    store: "VectorStore"
    entry_id: int
    deleted: bool

    async def resolve(self) -> int:
        """Rebuild the index. Returns the number of indexed vectors."""
        return await self.store.build_index()


class VectorStore:
    """Persists (content, vector, metadata) records and answers similarity queries.

    Records are append-only in SQLite. Search runs against the snapshot
    published by the last ``build_index`` call, so inserts become searchable
    only after the next build.
    """

    def __init__(self, db_path: Union[str, Path]):
        """Open (and create if needed) the vector database.

        Args:
            db_path: SQLite database file

        Raises:
            StorageError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        self.logger = get_logger("rag.vector_store")
        self._lock = threading.Lock()
        self._snapshot: Optional[_IndexSnapshot] = None
        self._generation = 0
        self._write_count = 0
        self._indexed_write_count = 0

        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Failed to open vector store: {e}", file_path=self.db_path) from e

        self.logger.info(f"Vector store opened at {self.db_path}")

    @classmethod
    async def open(cls, db_path: Union[str, Path]) -> "VectorStore":
        """Open the store without blocking the event loop."""
        return await asyncio.to_thread(cls, db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: Sequence = (), commit: bool = False) -> sqlite3.Cursor:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                if commit:
                    self._conn.commit()
                return cursor
            except sqlite3.Error as e:
                raise StorageError(f"Vector store query failed: {e}", file_path=self.db_path) from e

    def _fetchall(self, sql: str, params: Sequence = ()) -> List[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Vector store query failed: {e}", file_path=self.db_path) from e

    # Writes

    def _insert_sync(self, content_type: str, content: str, embedding: List[float], metadata: Optional[str]) -> int:
        blob = np.asarray(embedding, dtype=np.float32).tobytes()
        cursor = self._execute(
            "INSERT INTO knowledge_vectors (content_type, content, embedding, metadata, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (content_type, content, blob, metadata, datetime.now().isoformat()),
            commit=True,
        )
        with self._lock:
            self._write_count += 1
        return int(cursor.lastrowid)

    async def insert(self, content_type: str, content: str, embedding: List[float],
                     metadata: Optional[str] = None) -> int:
        """Persist a record. It is not searchable until the next index build.

        Args:
            content_type: Category of the content, e.g. "question"
            content: Original text
            embedding: Embedding vector of the text
            metadata: Optional JSON metadata string

        Returns:
            Identifier of the new record

        Raises:
            ValidationError: If the embedding is empty
            StorageError: If the write fails
        """
        if not embedding:
            raise ValidationError("Embedding must not be empty", field_name="embedding")
        return await asyncio.to_thread(self._insert_sync, content_type, content, embedding, metadata)

    def _delete_sync(self, entry_id: int) -> bool:
        cursor = self._execute("DELETE FROM knowledge_vectors WHERE id = ?", (entry_id,), commit=True)
        deleted = cursor.rowcount > 0
        if deleted:
            with self._lock:
                self._write_count += 1
        return deleted

    async def delete(self, entry_id: int) -> RebuildPending:
        """Remove a record from storage.

        The current index keeps the vector until the next build; searches skip
        it because its row is gone.
        """
        deleted = await asyncio.to_thread(self._delete_sync, entry_id)
        self.logger.info("Vector deleted", extra={"entry_id": entry_id, "deleted": deleted})
        return RebuildPending(store=self, entry_id=entry_id, deleted=deleted)

    # Reads

    def _get_sync(self, entry_id: int) -> Optional[KnowledgeEntry]:
        rows = self._fetchall(
            "SELECT id, content_type, content, embedding, metadata, created_at FROM knowledge_vectors WHERE id = ?",
            (entry_id,),
        )
        if not rows:
            return None
        row_id, content_type, content, blob, metadata, created_at = rows[0]
        return KnowledgeEntry(
            id=row_id,
            content_type=content_type,
            content=content,
            embedding=np.frombuffer(blob, dtype=np.float32).tolist(),
            metadata=metadata,
            created_at=datetime.fromisoformat(created_at),
        )

    async def get(self, entry_id: int) -> Optional[KnowledgeEntry]:
        return await asyncio.to_thread(self._get_sync, entry_id)

    async def count(self) -> int:
        rows = await asyncio.to_thread(self._fetchall, "SELECT COUNT(*) FROM knowledge_vectors")
        return int(rows[0][0])

    async def count_by_type(self, content_type: str) -> int:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT COUNT(*) FROM knowledge_vectors WHERE content_type = ?", (content_type,)
        )
        return int(rows[0][0])

    # Index

    @property
    def is_built(self) -> bool:
        return self._snapshot is not None

    @property
    def generation(self) -> int:
        """Generation number of the published snapshot, 0 before the first build."""
        return self._snapshot.generation if self._snapshot is not None else 0

    @property
    def index_size(self) -> int:
        return self._snapshot.size if self._snapshot is not None else 0

    @property
    def rebuild_required(self) -> bool:
        """True when records were inserted or deleted since the last build."""
        return self._snapshot is None or self._write_count != self._indexed_write_count

    def _build_sync(self) -> Tuple[_IndexSnapshot, int]:
        # Generation is fixed before the rows are read; only the highest one is ever published.
        with self._lock:
            self._generation += 1
            generation = self._generation
            write_count = self._write_count
        rows = self._fetchall("SELECT id, embedding FROM knowledge_vectors ORDER BY id")

        if not rows:
            empty = _IndexSnapshot(generation=generation, ids=np.empty(0, dtype=np.int64), nn=None, dimension=None)
            return empty, write_count

        vectors = [np.frombuffer(blob, dtype=np.float32) for _, blob in rows]
        dimensions = {vector.shape[0] for vector in vectors}
        if len(dimensions) != 1:
            raise DataIntegrityError(
                f"Stored embeddings have mixed dimensions: {sorted(dimensions)}",
                data_type="embedding",
                constraint="uniform_dimension",
            )

        matrix = np.vstack(vectors)
        nn = NearestNeighbors(metric="cosine", algorithm="brute")
        nn.fit(matrix)
        ids = np.fromiter((row_id for row_id, _ in rows), dtype=np.int64, count=len(rows))
        snapshot = _IndexSnapshot(generation=generation, ids=ids, nn=nn, dimension=matrix.shape[1])
        return snapshot, write_count

    async def build_index(self) -> int:
        """Build a fresh index from every persisted vector and publish it.

        A build that finishes after a newer one has been published is discarded.

        Returns:
            Number of vectors in the published index

        Raises:
            DataIntegrityError: If stored vectors differ in dimension
            StorageError: If reading the vectors fails
        """
        start_time = time.time()
        snapshot, write_count = await asyncio.to_thread(self._build_sync)
        with self._lock:
            current = self._snapshot
            superseded = current is not None and current.generation > snapshot.generation
            if not superseded:
                self._snapshot = snapshot
                self._indexed_write_count = write_count

        if superseded:
            self.logger.info(
                "Discarded index build superseded by a newer generation",
                extra={"generation": snapshot.generation, "published_generation": current.generation},
            )
            return current.size

        log_performance("vector_index_build", time.time() - start_time,
                        {"vectors": snapshot.size, "generation": snapshot.generation})
        self.logger.info(f"Vector index built with {snapshot.size} vectors (generation {snapshot.generation})")
        return snapshot.size

    def _query_sync(self, snapshot: _IndexSnapshot, query: np.ndarray, n_candidates: int) -> List[Tuple[int, float]]:
        distances, positions = snapshot.nn.kneighbors(query.reshape(1, -1), n_neighbors=n_candidates)
        return [
            (int(snapshot.ids[position]), float(distance))
            for position, distance in zip(positions[0], distances[0])
        ]

    def _fetch_rows_sync(self, ids: List[int]) -> Dict[int, tuple]:
        placeholders = ",".join("?" for _ in ids)
        rows = self._fetchall(
            f"SELECT id, content_type, content, metadata FROM knowledge_vectors WHERE id IN ({placeholders})",
            ids,
        )
        return {row[0]: row for row in rows}

    async def search(self, embedding: List[float], k: int,
                     content_type: Optional[str] = None) -> List[SimilaritySearchResult]:
        """Find the stored records most similar to a query vector.

        Args:
            embedding: Query vector
            k: Maximum number of results
            content_type: Optional category filter

        Returns:
            Up to k results ordered by descending similarity

        Raises:
            IndexNotBuiltError: If no index has been built yet
            EmbeddingDimensionError: If the query length differs from the indexed vectors
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexNotBuiltError()
        if k <= 0 or snapshot.size == 0:
            return []

        query = np.asarray(embedding, dtype=np.float32)
        if query.ndim != 1 or query.shape[0] != snapshot.dimension:
            raise EmbeddingDimensionError(
                f"Query vector has dimension {query.size}, index expects {snapshot.dimension}",
                expected=snapshot.dimension,
                actual=int(query.size),
            )

        # Over-fetch so that type filtering and deleted rows still leave k hits.
        n_candidates = min(max(2 * k, MIN_CANDIDATES), snapshot.size)
        candidates = await asyncio.to_thread(self._query_sync, snapshot, query, n_candidates)
        rows = await asyncio.to_thread(self._fetch_rows_sync, [entry_id for entry_id, _ in candidates])

        results: List[SimilaritySearchResult] = []
        for entry_id, distance in candidates:
            row = rows.get(entry_id)
            if row is None:
                continue
            _, row_type, content, metadata = row
            if content_type is not None and row_type != content_type:
                continue
            results.append(SimilaritySearchResult(
                id=entry_id,
                content=content,
                content_type=row_type,
                metadata=metadata,
                similarity=1.0 - distance,
            ))
            if len(results) >= k:
                break

        return results
