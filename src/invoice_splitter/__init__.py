"""Invoice boundary detection for multi-page expense documents."""

from .config import Settings, SplitterConfig
from .container_heuristic import detect_container
from .exceptions import (
    MalformedResponseError,
    ModelInvocationError,
    SplitterError,
    ValidationError,
)
from .llm import ModelCapability, OllamaCapability
from .models import Page, PageAnalysisResult, PageGroup, SplitOutcome
from .splitter import SplitOrchestrator, analyze_pages, create_splitter

__version__ = "0.1.0"

__all__ = [
    "MalformedResponseError",
    "ModelCapability",
    "ModelInvocationError",
    "OllamaCapability",
    "Page",
    "PageAnalysisResult",
    "PageGroup",
    "Settings",
    "SplitOrchestrator",
    "SplitOutcome",
    "SplitterConfig",
    "SplitterError",
    "ValidationError",
    "analyze_pages",
    "create_splitter",
    "detect_container",
]
