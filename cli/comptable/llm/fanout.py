"""LLM Query Fan-out - Same prompt to several models, one result per model."""

import asyncio
from typing import Optional

from comptable.llm.openrouter import ChatClient, build_messages
from comptable.logging import get_logger
from comptable.models.config import FanoutConfig
from comptable.models.output import EntityKind, RawModelResponse, failed_response
from comptable.pipeline.parser import parse_response
from comptable.prompts import load_and_format

logger = get_logger("comptable.llm.fanout")


class QueryFanout:
    """
    Query every configured model concurrently.

    Each call is bounded by the configured timeout and every error becomes a
    failed RawModelResponse, so the gather over all models always resolves.
    """

    def __init__(self, client: ChatClient, config: Optional[FanoutConfig] = None):
        self.client = client
        self.config = config or FanoutConfig()

    @property
    def models(self) -> list[str]:
        return self.config.models

    async def _query_model(
        self,
        model: str,
        prompt: str,
        kind: EntityKind,
        system_prompt: Optional[str] = None,
    ) -> RawModelResponse:
        """Query a single model and parse its reply."""
        try:
            content = await asyncio.wait_for(
                self.client.chat(
                    build_messages(prompt, system_prompt),
                    model=model,
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                ),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError:
            reason = f"Timed out after {self.config.request_timeout:g}s"
            logger.warning("fanout_model_failed", model=model, kind=kind, error=reason)
            return failed_response(model, kind, reason)
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.warning("fanout_model_failed", model=model, kind=kind, error=reason)
            return failed_response(model, kind, reason)

        if not content or not content.strip():
            logger.warning("fanout_model_failed", model=model, kind=kind, error="empty content")
            return failed_response(model, kind, "Empty response content")

        response = parse_response(model, content, kind=kind)
        if response.ok:
            logger.debug("fanout_model_complete", model=model, kind=kind, items=len(response.items))
        else:
            logger.warning("fanout_model_failed", model=model, kind=kind, error=response.failure)
        return response

    async def query_all(
        self,
        prompt: str,
        kind: EntityKind,
        system_prompt: Optional[str] = None,
    ) -> list[RawModelResponse]:
        """
        Send one prompt to every model.

        Args:
            prompt: User prompt text
            kind: What the prompt asks for
            system_prompt: Optional system prompt

        Returns:
            One response per model, in configured model order
        """
        tasks = [
            self._query_model(model, prompt, kind, system_prompt) for model in self.models
        ]
        responses = await asyncio.gather(*tasks)

        succeeded = sum(1 for r in responses if r.ok)
        logger.info("fanout_complete", kind=kind, models=len(responses), succeeded=succeeded)
        return list(responses)

    async def get_competitors(self, target: str) -> list[RawModelResponse]:
        """Ask every model for the target's competitors."""
        prompt = load_and_format("fanout", "competitors", target=target)
        return await self.query_all(prompt, "competitors")

    async def get_criteria(self, target: str) -> list[RawModelResponse]:
        """Ask every model for criteria to compare the target on."""
        prompt = load_and_format("fanout", "criteria", target=target)
        return await self.query_all(prompt, "criteria")
