"""Storage interface for the knowledge counts the core consumes."""

import sqlite3
import threading
from pathlib import Path
from typing import Dict, Union

from ..utils.exceptions import StorageError
from ..utils.logging import get_logger


class Repository:
    """Abstract interface for the application's persistence layer.

    The interview core reads only knowledge counts from it; sessions,
    resumes and answers are stored elsewhere.
    """

    def get_knowledge_count(self) -> int:
        """Total number of stored knowledge records."""
        raise NotImplementedError

    def get_knowledge_count_by_type(self) -> Dict[str, int]:
        """Number of stored knowledge records per content type."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held by the repository."""


class SQLiteRepository(Repository):
    """Repository reading knowledge counts from the vector database."""

    def __init__(self, db_path: Union[str, Path]):
        """Initialize the repository.

        Args:
            db_path: SQLite database shared with the vector store
        """
        self.db_path = str(db_path)
        self.logger = get_logger("storage.repository")
        self._lock = threading.Lock()
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Failed to open repository: {e}", file_path=self.db_path) from e

    def _table_exists(self) -> bool:
        row = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'knowledge_vectors'"
        ).fetchone()
        return row is not None

    def get_knowledge_count(self) -> int:
        with self._lock:
            try:
                if not self._table_exists():
                    return 0
                return int(self._conn.execute("SELECT COUNT(*) FROM knowledge_vectors").fetchone()[0])
            except sqlite3.Error as e:
                raise StorageError(f"Failed to count knowledge records: {e}", file_path=self.db_path) from e

    def get_knowledge_count_by_type(self) -> Dict[str, int]:
        with self._lock:
            try:
                if not self._table_exists():
                    return {}
                rows = self._conn.execute(
                    "SELECT content_type, COUNT(*) FROM knowledge_vectors GROUP BY content_type"
                ).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to count knowledge records: {e}", file_path=self.db_path) from e
        return {content_type: int(count) for content_type, count in rows}

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def create_repository(storage_type: str = "sqlite", **kwargs) -> Repository:
    """Build a repository for the configured storage type.

    Args:
        storage_type: Type of storage to use ("sqlite" for now)
        **kwargs: Repository constructor arguments

    Raises:
        StorageError: If the storage type is not supported
    """
    if storage_type == "sqlite":
        return SQLiteRepository(**kwargs)
    raise StorageError(f"Unsupported storage type: {storage_type}")
