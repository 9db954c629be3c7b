"""Configuration loader for API keys and analysis settings."""

import os
from pathlib import Path
from typing import Optional

from comptable.models.config import AnalysisConfig


def get_openrouter_api_key() -> Optional[str]:
    """Get the OpenRouter API key (fan-out queries) from OPENROUTER_API_KEY."""
    return os.environ.get("OPENROUTER_API_KEY") or None


def get_groq_api_key() -> Optional[str]:
    """Get the Groq API key (normalization and cell answers) from GROQ_API_KEY."""
    return os.environ.get("GROQ_API_KEY") or None


def get_api_keys() -> dict:
    """Get all API keys as a dictionary."""
    return {
        "openrouter": get_openrouter_api_key(),
        "groq": get_groq_api_key(),
    }


def missing_api_keys() -> list[str]:
    """Names of the environment variables that still need to be set."""
    missing = []
    if not get_openrouter_api_key():
        missing.append("OPENROUTER_API_KEY")
    if not get_groq_api_key():
        missing.append("GROQ_API_KEY")
    return missing


def load_analysis_config(path: Optional[str | Path] = None) -> AnalysisConfig:
    """
    Load analysis settings.

    Resolution order:
    1. Explicit path argument
    2. COMPTABLE_CONFIG environment variable
    3. Built-in defaults
    """
    config_path = path or os.environ.get("COMPTABLE_CONFIG")
    if config_path:
        return AnalysisConfig.from_json_file(str(config_path))
    return AnalysisConfig()
