"""Configuration management with environment variables and CLI overrides."""

from pathlib import Path
from typing import Optional

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.table import Table

logger = structlog.get_logger()

# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class LLMConfig(BaseSettings):
    """Default LLM/OpenAI-compatible endpoint configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str = Field(default="", description="OpenAI API key")
    base_url: str = Field(default="https://api.openai.com/v1", description="API base URL")
    model: str = Field(default="gpt-4.1", description="Model name")
    max_tokens: int = Field(default=4096, description="Max tokens per request")
    temperature: float = Field(default=0.7, description="Temperature for generation")
    timeout_seconds: float = Field(default=120.0, description="Per-call timeout in seconds")
    max_retries: int = Field(default=2, description="Retries inside the client on transport errors")


class TaskLLMConfig(BaseSettings):
    """Base class for task-specific LLM overrides.

    Empty fields fall back to the default LLM config.
    """

    api_key: str = Field(default="", description="API key")
    base_url: str = Field(default="", description="API base URL")
    model: str = Field(default="", description="Model name")
    max_tokens: int = Field(default=0, description="Max tokens per request")
    temperature: float = Field(default=0.0, description="Temperature")
    timeout_seconds: float = Field(default=0.0, description="Per-call timeout in seconds")


class ExtractionLLMConfig(TaskLLMConfig):
    """LLM configuration for proper-noun extraction."""

    model_config = SettingsConfigDict(env_prefix="EXTRACTION_LLM_")


class TranslatorLLMConfig(TaskLLMConfig):
    """LLM configuration for chapter translation."""

    model_config = SettingsConfigDict(env_prefix="TRANSLATOR_LLM_")


class SummaryLLMConfig(TaskLLMConfig):
    """LLM configuration for chapter summaries."""

    model_config = SettingsConfigDict(env_prefix="SUMMARY_LLM_")


class DetectionConfig(BaseSettings):
    """Name detection configuration."""

    model_config = SettingsConfigDict(env_prefix="DETECTION_")

    prompt_chars: int = Field(
        default=2000, description="Characters of source text sent to the extraction model"
    )
    truncate_fallback: bool = Field(
        default=False,
        description="Apply prompt_chars to the heuristic fallback as well (default: scan full text)",
    )
    max_tokens: int = Field(default=1000, description="Max tokens for the extraction response")


class ContextConfig(BaseSettings):
    """Cross-chapter context configuration."""

    model_config = SettingsConfigDict(env_prefix="CONTEXT_")

    max_summaries: int = Field(
        default=3, description="Number of prior chapter summaries included in the prompt"
    )


class SummaryConfig(BaseSettings):
    """Chapter summary configuration."""

    model_config = SettingsConfigDict(env_prefix="SUMMARY_")

    enabled: bool = Field(default=True, description="Generate summaries after translation")
    input_chars: int = Field(
        default=3000, description="Characters of translated text sent to the summarizer"
    )
    max_tokens: int = Field(default=300, description="Max tokens for the summary response")


# ---------------------------------------------------------------------------
# Main AppConfig
# ---------------------------------------------------------------------------


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", description="Logging level")
    novels_dir: Path = Field(default=Path("novels"), description="Novel library directory")

    # Sub-configs
    llm: LLMConfig = Field(default_factory=LLMConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    summary: SummaryConfig = Field(default_factory=SummaryConfig)

    # Task-specific LLM configs (fallback to llm if not set)
    extraction_llm: ExtractionLLMConfig = Field(default_factory=ExtractionLLMConfig)
    translator_llm: TranslatorLLMConfig = Field(default_factory=TranslatorLLMConfig)
    summary_llm: SummaryLLMConfig = Field(default_factory=SummaryLLMConfig)

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "AppConfig":
        """Load configuration from environment and .env file."""
        from dotenv import load_dotenv

        if env_file and env_file.exists():
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls(
            llm=LLMConfig(),
            detection=DetectionConfig(),
            context=ContextConfig(),
            summary=SummaryConfig(),
            extraction_llm=ExtractionLLMConfig(),
            translator_llm=TranslatorLLMConfig(),
            summary_llm=SummaryLLMConfig(),
        )


# ---------------------------------------------------------------------------
# Global config singleton
# ---------------------------------------------------------------------------

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


# ---------------------------------------------------------------------------
# LLM config helpers
# ---------------------------------------------------------------------------


def get_effective_llm_config(
    specific: TaskLLMConfig,
    fallback: LLMConfig,
    task_name: Optional[str] = None,
) -> LLMConfig:
    """Merge a task-specific LLM config with the default for unset values.

    Args:
        specific: Task-specific config (ExtractionLLMConfig, TranslatorLLMConfig, ...)
        fallback: Default LLMConfig to use for unset values
        task_name: Optional task name, logged with the resolved model

    Returns:
        LLMConfig with merged values
    """
    effective = LLMConfig(
        api_key=specific.api_key or fallback.api_key,
        base_url=specific.base_url or fallback.base_url,
        model=specific.model or fallback.model,
        max_tokens=specific.max_tokens or fallback.max_tokens,
        temperature=specific.temperature if specific.temperature > 0 else fallback.temperature,
        timeout_seconds=specific.timeout_seconds or fallback.timeout_seconds,
        max_retries=fallback.max_retries,
    )

    if task_name:
        logger.debug(
            "llm_config_resolved",
            task=task_name,
            model=effective.model,
            base_url=effective.base_url,
            specific_model=bool(specific.model),
        )

    return effective


def log_llm_config_summary() -> None:
    """Print a table of the effective LLM configuration per task."""
    console = Console()
    app_config = get_config()

    table = Table(show_header=True, header_style="bold blue", title="LLM Configuration")
    table.add_column("Task", style="cyan", width=12)
    table.add_column("Model", style="green")
    table.add_column("Base URL", style="yellow")
    table.add_column("Max Tokens", style="magenta", justify="right")
    table.add_column("Timeout", style="magenta", justify="right")
    table.add_column("Source", style="dim")

    table.add_row(
        "Default",
        app_config.llm.model,
        app_config.llm.base_url,
        str(app_config.llm.max_tokens),
        f"{app_config.llm.timeout_seconds:g}s",
        "OPENAI_*",
    )

    task_configs: list[tuple[str, str, TaskLLMConfig]] = [
        ("Extraction", "EXTRACTION_LLM_*", app_config.extraction_llm),
        ("Translator", "TRANSLATOR_LLM_*", app_config.translator_llm),
        ("Summary", "SUMMARY_LLM_*", app_config.summary_llm),
    ]

    for task_name, prefix, task_cfg in task_configs:
        effective = get_effective_llm_config(task_cfg, app_config.llm)
        source = prefix if task_cfg.model else "OPENAI_* (fallback)"
        table.add_row(
            task_name,
            effective.model,
            effective.base_url,
            str(effective.max_tokens),
            f"{effective.timeout_seconds:g}s",
            source,
        )

    console.print(table)
