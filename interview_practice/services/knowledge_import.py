"""Bulk import of knowledge records from JSON and pipe-delimited text files."""

import json
from pathlib import Path
from typing import Any, Union

import aiofiles
from pydantic import ValidationError as PydanticValidationError

from ..models.knowledge import ImportResult, KnowledgeItem
from ..utils.exceptions import InterviewPracticeError, StorageError, ValidationError
from ..utils.logging import get_logger
from .rag_service import RagService


logger = get_logger("rag.import")


async def _read_text(file_path: Path) -> str:
    try:
        async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
            return await f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(f"Failed to read import file: {e}", file_path=str(file_path)) from e


def _normalize_metadata(raw: Any) -> Any:
    if isinstance(raw, (dict, list)):
        return json.dumps(raw, ensure_ascii=False)
    return raw


async def import_from_json(file_path: Union[str, Path], rag_service: RagService) -> ImportResult:
    """Import a JSON array of ``{content_type, content, metadata}`` objects.

    Each record is embedded and stored on its own; failures are collected as
    ``"Line N: <error>"`` (N is the 1-based array position) and do not stop
    the import. The index is not rebuilt.

    Raises:
        StorageError: If the file cannot be read
        ValidationError: If the file is not a JSON array
    """
    file_path = Path(file_path)
    content = await _read_text(file_path)
    try:
        items = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to parse JSON: {e}", field_name=str(file_path)) from e
    if not isinstance(items, list):
        raise ValidationError("Import file must contain a JSON array", field_name=str(file_path))

    result = ImportResult()
    for idx, raw_item in enumerate(items):
        try:
            if isinstance(raw_item, dict):
                raw_item = {**raw_item, "metadata": _normalize_metadata(raw_item.get("metadata"))}
                item = KnowledgeItem(**raw_item)
            else:
                raise ValidationError(f"Expected an object, got {type(raw_item).__name__}")
            await rag_service.embed_and_store(item.content_type, item.content, item.metadata)
        except (InterviewPracticeError, PydanticValidationError) as e:
            result.fail_count += 1
            result.errors.append(f"Line {idx + 1}: {e}")
        else:
            result.success_count += 1

    logger.info(
        f"Imported {result.success_count} records from {file_path.name}",
        extra={"fail_count": result.fail_count},
    )
    return result


async def import_from_txt(file_path: Union[str, Path], rag_service: RagService) -> ImportResult:
    """Import ``content_type|content|metadata`` lines.

    Blank lines and lines starting with ``#`` are skipped. The metadata
    field is optional. Line numbers in errors are 1-based file lines.

    Raises:
        StorageError: If the file cannot be read
    """
    file_path = Path(file_path)
    content = await _read_text(file_path)

    result = ImportResult()
    for line_num, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split("|")
        if len(parts) < 2:
            result.fail_count += 1
            result.errors.append(f"Line {line_num}: Invalid format (need at least 2 fields)")
            continue

        content_type = parts[0].strip()
        content_text = parts[1].strip()
        metadata = parts[2].strip() if len(parts) > 2 and parts[2].strip() else None

        try:
            await rag_service.embed_and_store(content_type, content_text, metadata)
        except InterviewPracticeError as e:
            result.fail_count += 1
            result.errors.append(f"Line {line_num}: {e}")
        else:
            result.success_count += 1

    logger.info(
        f"Imported {result.success_count} records from {file_path.name}",
        extra={"fail_count": result.fail_count},
    )
    return result


async def import_file(file_path: Union[str, Path], rag_service: RagService) -> ImportResult:
    """Import a file, choosing the format by extension (.json or .txt).

    Raises:
        ValidationError: If the extension is not supported
    """
    suffix = Path(file_path).suffix.lower()
    if suffix == ".json":
        return await import_from_json(file_path, rag_service)
    if suffix == ".txt":
        return await import_from_txt(file_path, rag_service)
    raise ValidationError(f"Unsupported import file type: {suffix or '<none>'}", field_name="file_path")
