"""Configuration Models - Pydantic schemas for analysis configuration."""

from pydantic import BaseModel, Field


DEFAULT_FANOUT_MODELS = [
    "anthropic/claude-sonnet-4",
    "google/gemini-2.5-flash-lite-preview-06-17",
    "openai/gpt-4.1-mini",
    "deepseek/deepseek-chat-v3-0324",
    "qwen/qwen-2.5-7b-instruct",
    "perplexity/sonar",
    "openai/gpt-4o-mini-search-preview",
]

DEFAULT_GROQ_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"


class FanoutConfig(BaseModel):
    """Models queried for competitors and criteria."""

    models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FANOUT_MODELS),
        min_length=1,
        description="OpenRouter model IDs queried in parallel",
    )
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=500, ge=1)
    request_timeout: float = Field(
        default=60.0, gt=0, description="Seconds before a model call counts as failed"
    )


class NormalizerConfig(BaseModel):
    """Normalization service settings."""

    model: str = Field(default=DEFAULT_GROQ_MODEL, description="Groq model ID")
    temperature: float = Field(default=0.1, ge=0, le=2)
    max_tokens: int = Field(default=1000, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)


class CellConfig(BaseModel):
    """Cell answer and description settings."""

    model: str = Field(default=DEFAULT_GROQ_MODEL, description="Groq model ID")
    temperature: float = Field(default=0.1, ge=0, le=2)
    max_tokens: int = Field(default=15, ge=1, description="Tokens for a cell answer")
    description_max_tokens: int = Field(default=60, ge=1, description="Tokens for a description")
    batch_size: int = Field(default=5, ge=1, description="Requests per batch in bulk mode")
    batch_delay: float = Field(default=1.0, ge=0, description="Seconds to wait between batches")
    request_timeout: float = Field(default=30.0, gt=0)


class AnalysisConfig(BaseModel):
    """Complete analysis configuration."""

    fanout: FanoutConfig = Field(default_factory=FanoutConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    cells: CellConfig = Field(default_factory=CellConfig)
    top_k: int = Field(default=10, ge=1, description="Entities kept per kind after ranking")

    @classmethod
    def from_json_file(cls, path: str) -> "AnalysisConfig":
        """Load configuration from JSON file."""
        import json

        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def to_json_file(self, path: str) -> None:
        """Save configuration to JSON file."""
        import json

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
