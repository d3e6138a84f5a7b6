"""Embedding service wrapping a local sentence-transformers model."""

import asyncio
import threading
import time
from pathlib import Path
from typing import List, Optional, Union

from ..utils.exceptions import EmbeddingError, ModelLoadError
from ..utils.logging import get_logger, log_performance


REQUIRED_MODEL_FILES = ("config.json", "tokenizer.json")
WEIGHT_FILES = ("model.safetensors", "pytorch_model.bin")


class EmbeddingService:
    """Turns text into fixed-length, L2-normalised vectors.

    The model is loaded from a local directory exactly once, at construction.
    Inference is CPU-bound, so the async entry points hand it to a worker
    thread; a lock serialises access to the model.
    """

    def __init__(self, model_dir: Union[str, Path], device: Optional[str] = None):
        """Load the embedding model.

        Args:
            model_dir: Directory holding the model configuration, tokenizer and weights
            device: Optional torch device, defaults to the library's choice

        Raises:
            ModelLoadError: If a required file is missing or the model fails to load
        """
        self.model_dir = Path(model_dir)
        self.device = device
        self.logger = get_logger("rag.embedding")
        self._lock = threading.Lock()
        self._check_model_files()
        self._model = self._load_model()
        self._dimension = self._model.get_sentence_embedding_dimension()

    def _check_model_files(self) -> None:
        if not self.model_dir.is_dir():
            raise ModelLoadError(f"Model directory not found: {self.model_dir}", model_dir=str(self.model_dir))

        missing = [name for name in REQUIRED_MODEL_FILES if not (self.model_dir / name).exists()]
        if not any((self.model_dir / name).exists() for name in WEIGHT_FILES):
            missing.append(" or ".join(WEIGHT_FILES))
        if missing:
            raise ModelLoadError(
                f"Model files missing in {self.model_dir}: {', '.join(missing)}",
                model_dir=str(self.model_dir),
                details={"missing_files": missing},
            )

    def _load_model(self):
        start_time = time.time()
        try:
            from sentence_transformers import SentenceTransformer

            model = SentenceTransformer(str(self.model_dir), device=self.device)
        except Exception as e:
            raise ModelLoadError(f"Failed to load embedding model: {e}", model_dir=str(self.model_dir)) from e

        log_performance("embedding_model_load", time.time() - start_time, {"model_dir": str(self.model_dir)})
        self.logger.info(f"Embedding model loaded from {self.model_dir}")
        return model

    @property
    def dimension(self) -> int:
        """Length of every vector this service produces."""
        return self._dimension

    def _encode(self, texts: List[str]) -> List[List[float]]:
        with self._lock:
            try:
                vectors = self._model.encode(
                    texts,
                    normalize_embeddings=True,
                    convert_to_numpy=True,
                    show_progress_bar=False,
                )
            except Exception as e:
                raise EmbeddingError(f"Embedding inference failed: {e}", details={"batch_size": len(texts)}) from e
        return vectors.tolist()

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Args:
            text: Input text

        Returns:
            Normalised embedding vector

        Raises:
            EmbeddingError: If inference fails
        """
        vectors = await asyncio.to_thread(self._encode, [text])
        return vectors[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts in one model call, preserving input order."""
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, list(texts))
