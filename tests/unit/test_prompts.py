import pytest

from comptable.prompts import get_available_prompts, load_and_format, load_prompt


def test_fanout_prompt_embeds_target():
    prompt = load_and_format("fanout", "competitors", target="Tesla Model 3")

    assert "Tesla Model 3" in prompt
    assert '"competitors"' in prompt
    assert "{target}" not in prompt


def test_normalize_prompt_keeps_json_example():
    prompt = load_and_format("normalize", "criteria", context="Uber", entities_json='["Price", "Cost"]')

    assert '["Price", "Cost"]' in prompt
    assert '"normalized"' in prompt


def test_missing_variable():
    with pytest.raises(ValueError, match="target"):
        load_and_format("fanout", "criteria")


def test_missing_template():
    with pytest.raises(FileNotFoundError):
        load_prompt("fanout", "nope")


def test_available_prompts():
    assert get_available_prompts() == {
        "cells": ["answer", "describe", "describe_system", "system"],
        "fanout": ["competitors", "criteria"],
        "normalize": ["competitors", "criteria", "system"],
    }
