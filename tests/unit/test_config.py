import pytest
from pydantic import ValidationError

from comptable.config_loader import get_api_keys, load_analysis_config, missing_api_keys
from comptable.models.config import DEFAULT_FANOUT_MODELS, AnalysisConfig, FanoutConfig


def test_defaults():
    config = AnalysisConfig()

    assert config.fanout.models == DEFAULT_FANOUT_MODELS
    assert config.fanout.max_tokens == 500
    assert config.normalizer.temperature == 0.1
    assert config.cells.max_tokens == 15
    assert config.cells.batch_size == 5
    assert config.top_k == 10


def test_empty_model_list_rejected():
    with pytest.raises(ValidationError):
        FanoutConfig(models=[])


def test_json_file_round_trip(tmp_path):
    path = tmp_path / "config.json"
    AnalysisConfig(fanout=FanoutConfig(models=["a/b"], request_timeout=5), top_k=3).to_json_file(str(path))

    loaded = AnalysisConfig.from_json_file(str(path))

    assert loaded.fanout.models == ["a/b"]
    assert loaded.fanout.request_timeout == 5
    assert loaded.top_k == 3


def test_load_from_env(tmp_path, monkeypatch):
    path = tmp_path / "env.json"
    path.write_text('{"cells": {"batch_size": 2}}', encoding="utf-8")
    monkeypatch.setenv("COMPTABLE_CONFIG", str(path))

    assert load_analysis_config().cells.batch_size == 2


def test_load_defaults_without_env(monkeypatch):
    monkeypatch.delenv("COMPTABLE_CONFIG", raising=False)

    assert load_analysis_config() == AnalysisConfig()


def test_missing_keys(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or")
    monkeypatch.setenv("GROQ_API_KEY", "")

    assert missing_api_keys() == ["GROQ_API_KEY"]
    assert get_api_keys() == {"openrouter": "sk-or", "groq": None}
