"""Configuration Manager for handling application configuration and settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, validator

from ..models.enums import RotationStrategy
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger
from ..utils.retry import RetryPolicy


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "human"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    console_output: bool = False
    file_output: bool = False


@dataclass
class RagConfig:
    """Knowledge engine settings."""

    db_path: str = "data/knowledge.db"
    model_dir: str = "models/bge-small-zh-v1.5"
    init_timeout: float = 10.0  # seconds
    context_max_length: int = 2000
    top_k: int = 3


@dataclass
class RetryConfig:
    """Retry settings for language model calls."""

    max_retries: int = 3
    initial_delay: float = 1.0  # seconds
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0  # seconds
    retry_only_retryable: bool = False

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            backoff_multiplier=self.backoff_multiplier,
            max_delay=self.max_delay,
            retry_only_retryable=self.retry_only_retryable,
        )


@dataclass
class InterviewConfig:
    """Interview session settings."""

    rotation_strategy: str = "phase_based"
    advance_score: float = 8.0
    agent_model: str = "Pro/Qwen/Qwen2.5-7B-Instruct"
    agent_temperature: float = 0.7


class LLMProviderConfig(BaseModel):
    """LLM Provider configuration model."""

    name: str = Field(..., description="Provider name")
    enabled: bool = Field(default=True, description="Whether provider is enabled")
    api_key: str = Field(default="", description="API key for the provider")
    base_url: Optional[str] = Field(default=None, description="Base URL for API calls")
    model: str = Field(default="Qwen/Qwen3-8B", description="Default model name")
    timeout: int = Field(default=60, description="Request timeout in seconds")

    @validator("timeout")
    def validate_timeout(cls, v):
        if v < 1:
            raise ValueError("Timeout must be at least 1 second")
        return v


class AppConfig(BaseModel):
    """Main application configuration model."""

    app_name: str = Field(default="Interview Practice", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment")

    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")
    rag: RagConfig = Field(default_factory=RagConfig, description="Knowledge engine settings")
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry settings")
    interview: InterviewConfig = Field(default_factory=InterviewConfig, description="Interview settings")

    llm_providers: List[LLMProviderConfig] = Field(default_factory=list, description="LLM provider configurations")

    class Config:
        validate_assignment = True


_SECTIONS = {
    "logging": LoggingConfig,
    "rag": RagConfig,
    "retry": RetryConfig,
    "interview": InterviewConfig,
}


class ConfigurationManager:
    """Manages application configuration and settings.

    Sources, later ones overriding earlier ones: built-in defaults,
    ``config.yaml``, ``config.<environment>.yaml``, then ``providers.yaml``
    whose ``${VAR}`` values are read from the environment (and ``.env``).
    """

    def __init__(self, config_path: str = "config", env_file: str = ".env"):
        """Initialize the configuration manager.

        Args:
            config_path: Path to configuration directory.
            env_file: Path to environment file.
        """
        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self.config: Optional[AppConfig] = None
        self.logger = get_logger("configuration_manager")

    def initialize(self) -> None:
        """Load and validate the configuration.

        Raises:
            ConfigurationError: If a configuration file is malformed or invalid
        """
        self._load_environment_variables()
        self._load_configuration_files()
        self._validate_configuration()
        self.logger.info("ConfigurationManager initialized successfully")

    def _load_environment_variables(self) -> None:
        """Load environment variables from .env file."""
        if self.env_file.exists():
            from dotenv import load_dotenv
            load_dotenv(self.env_file)
            self.logger.info(f"Loaded environment variables from {self.env_file}")

        os.environ.setdefault("ENVIRONMENT", "development")

    def _load_configuration_files(self) -> None:
        config_data: Dict[str, Any] = AppConfig().model_dump()

        main_config_file = self.config_path / "config.yaml"
        if main_config_file.exists():
            self._merge_config(self._load_yaml_file(main_config_file), config_data)
            self.logger.info(f"Loaded main configuration from {main_config_file}")

        environment = os.getenv("ENVIRONMENT", "development")
        env_config_file = self.config_path / f"config.{environment}.yaml"
        if env_config_file.exists():
            self._merge_config(self._load_yaml_file(env_config_file), config_data)
            self.logger.info(f"Loaded environment configuration from {env_config_file}")

        if os.getenv("LOG_LEVEL"):
            config_data["logging"]["level"] = os.environ["LOG_LEVEL"]

        config_data["llm_providers"] = self._load_providers()

        try:
            self.config = AppConfig.model_validate(config_data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _merge_config(self, file_config: Dict[str, Any], config_data: Dict[str, Any]) -> None:
        """Merge a loaded YAML document into the nested configuration dict."""
        app_section = file_config.get("app") or {}
        config_data["app_name"] = app_section.get("name", config_data["app_name"])
        config_data["version"] = app_section.get("version", config_data["version"])
        config_data["debug"] = app_section.get("debug", config_data["debug"])
        config_data["environment"] = app_section.get("environment", config_data["environment"])

        for section, section_cls in _SECTIONS.items():
            values = file_config.get(section)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigurationError(f"Section '{section}' must be a mapping", config_key=section)
            unknown = set(values) - set(section_cls.__dataclass_fields__)
            if unknown:
                self.logger.warning(f"Ignoring unknown keys in '{section}': {', '.join(sorted(unknown))}")
            config_data[section].update({k: v for k, v in values.items() if k in section_cls.__dataclass_fields__})

    def _load_providers(self) -> List[Dict[str, Any]]:
        providers_file = self.config_path / "providers.yaml"
        if not providers_file.exists():
            self.logger.warning(f"Providers configuration file not found: {providers_file}, using environment")
            return [self._provider_from_env()] if os.getenv("SILICONFLOW_API_KEY") else []

        providers_config = self._load_yaml_file(providers_file)
        providers = []
        for name, provider_data in (providers_config.get("providers") or {}).items():
            if not provider_data.get("enabled", False):
                continue
            resolved = {key: self._substitute_env(value) for key, value in provider_data.items()}
            if not resolved.get("api_key"):
                self.logger.warning(f"API key not set for provider {name}, skipping it")
                continue
            providers.append({"name": name, **resolved})

        self.logger.info(f"Loaded {len(providers)} enabled LLM providers from {providers_file}")
        return providers

    @staticmethod
    def _provider_from_env() -> Dict[str, Any]:
        return {
            "name": "siliconflow",
            "api_key": os.getenv("SILICONFLOW_API_KEY", ""),
            "base_url": os.getenv("SILICONFLOW_BASE_URL"),
            "model": os.getenv("SILICONFLOW_MODEL", "Qwen/Qwen3-8B"),
        }

    @staticmethod
    def _substitute_env(value: Any) -> Any:
        """Replace a ``${VAR}`` string with the environment value (empty if unset)."""
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            return os.getenv(value[2:-1], "")
        return value

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML file content.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load YAML file {file_path}: {e}") from e
        if not isinstance(content, dict):
            raise ConfigurationError(f"Configuration file {file_path} must contain a mapping")
        return content

    def _validate_configuration(self) -> None:
        """Validate the loaded configuration."""
        config = self.get_config()

        if not config.llm_providers:
            self.logger.warning("No LLM providers configured")

        try:
            RotationStrategy(config.interview.rotation_strategy)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown rotation strategy: {config.interview.rotation_strategy}",
                config_key="interview.rotation_strategy",
            ) from e

        if config.rag.init_timeout <= 0:
            raise ConfigurationError("rag.init_timeout must be positive", config_key="rag.init_timeout")
        if config.rag.top_k < 1:
            raise ConfigurationError("rag.top_k must be at least 1", config_key="rag.top_k")
        if not 1.0 <= config.interview.advance_score <= 10.0:
            raise ConfigurationError("interview.advance_score must be between 1 and 10",
                                     config_key="interview.advance_score")
        if config.retry.max_retries < 1:
            raise ConfigurationError("retry.max_retries must be at least 1", config_key="retry.max_retries")

    def get_config(self) -> AppConfig:
        """Get the current configuration.

        Raises:
            ConfigurationError: If configuration is not loaded.
        """
        if not self.config:
            raise ConfigurationError("Configuration not loaded")
        return self.config

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a specific configuration setting.

        Args:
            key: Configuration key (dot notation supported).
            default: Default value if key not found.
        """
        if not self.config:
            return default

        value: Any = self.config
        for k in key.split("."):
            if hasattr(value, k):
                value = getattr(value, k)
            elif isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_llm_provider_config(self, provider_name: str) -> Optional[LLMProviderConfig]:
        """Get configuration for a specific LLM provider."""
        if not self.config:
            return None

        for provider in self.config.llm_providers:
            if provider.name.lower() == provider_name.lower():
                return provider
        return None

    def get_enabled_llm_providers(self) -> List[LLMProviderConfig]:
        if not self.config:
            return []
        return [p for p in self.config.llm_providers if p.enabled]

    def get_rotation_strategy(self) -> RotationStrategy:
        return RotationStrategy(self.get_config().interview.rotation_strategy)

    def get_retry_policy(self) -> RetryPolicy:
        return self.get_config().retry.to_policy()
