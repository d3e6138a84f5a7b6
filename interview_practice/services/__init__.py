"""Service modules for the Interview Practice core."""

from .configuration_manager import AppConfig, ConfigurationManager, LLMProviderConfig
from .embedding_service import EmbeddingService
from .knowledge_bootstrap import JOB_TEMPLATES, JobTemplate, KnowledgeBootstrap
from .knowledge_import import import_file, import_from_json, import_from_txt
from .llm_manager import LanguageModelClient, LLMManager
from .rag_service import RagService
from .state_machine import InterviewStateMachine
from .storage_manager import Repository, SQLiteRepository, create_repository
from .vector_store import RebuildPending, VectorStore

__all__ = [
    "AppConfig",
    "ConfigurationManager",
    "LLMProviderConfig",
    "EmbeddingService",
    "JOB_TEMPLATES",
    "JobTemplate",
    "KnowledgeBootstrap",
    "import_file",
    "import_from_json",
    "import_from_txt",
    "LanguageModelClient",
    "LLMManager",
    "RagService",
    "InterviewStateMachine",
    "Repository",
    "SQLiteRepository",
    "create_repository",
    "RebuildPending",
    "VectorStore",
]
