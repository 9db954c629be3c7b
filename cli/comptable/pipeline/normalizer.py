"""Entity Normalizer - Collapses near-identical entity names via an LLM.

The normalization model sees the full union of raw names for one entity
kind and returns a raw -> canonical mapping. Whatever goes wrong (transport,
HTTP status, unparseable or malformed output) the identity map is used
instead, so normalization never stops the pipeline.
"""

import asyncio
import json
from typing import Any

from comptable.llm.openrouter import ChatClient, build_messages
from comptable.logging import get_logger
from comptable.models.config import NormalizerConfig
from comptable.models.output import EntityKind, NormalizationResult
from comptable.pipeline.parser import extract_json
from comptable.prompts import load_and_format, load_prompt

logger = get_logger("comptable.pipeline.normalizer")


def group_variants(entities: list[str], mapping: dict[str, str]) -> dict[str, list[str]]:
    """Invert a mapping into canonical -> raw variants, in input order."""
    groups: dict[str, list[str]] = {}
    for entity in entities:
        groups.setdefault(mapping[entity], []).append(entity)
    return groups


def build_mapping(entities: list[str], data: Any) -> dict[str, str]:
    """
    Validate a decoded normalization reply into a complete mapping.

    Args:
        entities: Raw names that were sent
        data: Decoded JSON reply

    Returns:
        Mapping covering exactly the input entities

    Raises:
        ValueError: If the reply has no "normalized" object
    """
    if not isinstance(data, dict) or not isinstance(data.get("normalized"), dict):
        raise ValueError("Normalization reply has no 'normalized' object")

    normalized = data["normalized"]
    mapping = {}
    for entity in entities:
        canonical = normalized.get(entity)
        if isinstance(canonical, str) and canonical.strip():
            mapping[entity] = canonical.strip()
        else:
            # Unmapped names stand for themselves
            mapping[entity] = entity
    return mapping


class EntityNormalizer:
    """
    LLM-backed entity normalizer.

    Stateless: each call depends only on (entities, context, kind).
    """

    def __init__(self, client: ChatClient, config: NormalizerConfig | None = None):
        self.client = client
        self.config = config or NormalizerConfig()

    def build_prompt(self, entities: list[str], context: str, kind: EntityKind) -> str:
        return load_and_format(
            "normalize",
            kind,
            context=context,
            entities_json=json.dumps(entities, ensure_ascii=False),
        )

    async def _request(self, entities: list[str], context: str, kind: EntityKind) -> str:
        messages = build_messages(
            self.build_prompt(entities, context, kind),
            system_prompt=load_prompt("normalize", "system"),
        )
        return await asyncio.wait_for(
            self.client.chat(
                messages,
                model=self.config.model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            ),
            timeout=self.config.request_timeout,
        )

    async def normalize(
        self, entities: list[str], context: str, kind: EntityKind
    ) -> NormalizationResult:
        """
        Normalize one kind's raw entity names.

        Args:
            entities: Deduplicated raw names across all model responses
            context: The analysis target, used to disambiguate
            kind: "competitors" or "criteria"

        Returns:
            NormalizationResult covering every input entity
        """
        if not entities:
            return NormalizationResult()

        try:
            content = await self._request(entities, context, kind)
            mapping = build_mapping(entities, extract_json(content, expected_type="object"))
        except Exception as e:
            logger.warning(
                "normalization_failed",
                kind=kind,
                entities=len(entities),
                error=str(e) or type(e).__name__,
            )
            return NormalizationResult.identity(entities)

        groups = group_variants(entities, mapping)
        logger.info(
            "normalization_complete",
            kind=kind,
            entities=len(entities),
            canonical=len(groups),
        )
        return NormalizationResult(mapping=mapping, groups=groups)
