"""Prompt templates for fan-out, normalization and cell questions.

Templates are Markdown files under prompts/<category>/<name>.md. Variables
use str.format syntax ({target}); literal braces in JSON examples are doubled.
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def load_prompt(category: str, name: str) -> str:
    """
    Load a prompt template, stripped of surrounding whitespace.

    Args:
        category: 'fanout', 'normalize' or 'cells'
        name: File name without extension (e.g. 'competitors', 'system')

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    path = PROMPTS_DIR / category / f"{name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt not found: {category}/{name}")
    return path.read_text(encoding="utf-8").strip()


def load_and_format(category: str, name: str, **kwargs) -> str:
    """
    Load a template and substitute its variables.

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
        ValueError: If the template needs a variable that was not passed
    """
    template = load_prompt(category, name)
    try:
        return template.format(**kwargs)
    except KeyError as e:
        raise ValueError(f"Prompt {category}/{name} needs variable {e}") from e


def get_available_prompts() -> dict[str, list[str]]:
    """Category -> sorted template names, as listed by GET /api/prompts."""
    return {
        category_dir.name: sorted(f.stem for f in category_dir.glob("*.md"))
        for category_dir in sorted(PROMPTS_DIR.iterdir())
        if category_dir.is_dir() and not category_dir.name.startswith("_")
    }
