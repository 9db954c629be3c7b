"""comptable Models - Pydantic schemas and data models."""

from .config import AnalysisConfig, FanoutConfig, NormalizerConfig, CellConfig
from .output import (
    RawModelResponse,
    NormalizationResult,
    Competitor,
    Criterion,
    AnalysisResult,
    CellAnswer,
    CompetitorDescription,
    CellStore,
    failed_response,
)

__all__ = [
    "AnalysisConfig",
    "FanoutConfig",
    "NormalizerConfig",
    "CellConfig",
    "RawModelResponse",
    "NormalizationResult",
    "Competitor",
    "Criterion",
    "AnalysisResult",
    "CellAnswer",
    "CompetitorDescription",
    "CellStore",
    "failed_response",
]
