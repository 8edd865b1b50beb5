"""Configuration management for the Smart Invoice Splitter."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

if TYPE_CHECKING:
    from .llm import ModelCapability


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Application settings."""

    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # LLM Configuration
    ollama_url: str = Field(default="http://localhost:11434", env="OLLAMA_URL")
    llm_model: str = Field(default="llama3.1:8b", env="LLM_MODEL")
    vision_model: str = Field(default="llama3.2-vision:11b", env="VISION_MODEL")
    llm_temperature: float = Field(default=0.1, env="LLM_TEMPERATURE")
    llm_timeout: int = Field(default=120, env="LLM_TIMEOUT")

    # Splitting Configuration
    boundary_confidence_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, env="BOUNDARY_CONFIDENCE_THRESHOLD"
    )
    pair_excerpt_chars: int = Field(default=1000, gt=0, env="PAIR_EXCERPT_CHARS")
    batch_page_chars: int = Field(default=2000, gt=0, env="BATCH_PAGE_CHARS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@dataclass(frozen=True)
class SplitterConfig:
    """Everything the orchestrator needs, passed in at construction."""

    capability: "ModelCapability"
    boundary_confidence_threshold: float = 0.6
    pair_excerpt_chars: int = 1000
    batch_page_chars: int = 2000

    def __post_init__(self):
        if not 0.0 <= self.boundary_confidence_threshold <= 1.0:
            raise ValueError("boundary_confidence_threshold must be within [0, 1]")
        if self.pair_excerpt_chars <= 0 or self.batch_page_chars <= 0:
            raise ValueError("Truncation lengths must be positive")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        capability: "ModelCapability"
    ) -> "SplitterConfig":
        return cls(
            capability=capability,
            boundary_confidence_threshold=settings.boundary_confidence_threshold,
            pair_excerpt_chars=settings.pair_excerpt_chars,
            batch_page_chars=settings.batch_page_chars,
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging in the package's format."""
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT,
    )
