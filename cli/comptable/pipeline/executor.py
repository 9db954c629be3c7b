"""Pipeline Executor - Orchestrates one competitor analysis run."""

import asyncio
from typing import Callable, Optional

from comptable.llm.fanout import QueryFanout
from comptable.llm.openrouter import GroqClient, OpenRouterClient
from comptable.logging import bind_analysis, get_logger
from comptable.models.config import AnalysisConfig
from comptable.models.output import AnalysisResult, AnalysisStage, RawResponses
from comptable.pipeline.aggregation import aggregate_competitors, aggregate_criteria, unique_entities
from comptable.pipeline.cells import CellResolver
from comptable.pipeline.normalizer import EntityNormalizer

logger = get_logger("comptable.pipeline.executor")

ProgressCallback = Callable[[AnalysisStage, str], None]


class PipelineError(RuntimeError):
    """The analysis could not collect any data at all."""


class AnalysisPipeline:
    """
    Orchestrates the analysis.

    Phases:
    1. Fetching: competitor and criteria fan-out, concurrently
    2. Normalizing: both entity kinds, concurrently
    3. Aggregation: frequency ranking into an AnalysisResult
    """

    def __init__(
        self,
        fanout: QueryFanout,
        normalizer: EntityNormalizer,
        config: Optional[AnalysisConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.fanout = fanout
        self.normalizer = normalizer
        self.config = config or AnalysisConfig()
        self.progress_callback = progress_callback

    def _report(self, stage: AnalysisStage, message: str) -> None:
        logger.info("analysis_stage", stage=stage, message=message)
        if self.progress_callback:
            self.progress_callback(stage, message)

    async def run(self, target: str) -> AnalysisResult:
        """
        Run one analysis.

        Args:
            target: Product or company to analyze

        Returns:
            AnalysisResult with ranked competitors and criteria

        Raises:
            PipelineError: If the target is blank or a fan-out stage itself failed
        """
        target = target.strip()
        if not target:
            raise PipelineError("Target must not be empty")

        with bind_analysis(target):
            self._report("fetching", "Querying multiple LLMs for competitors and criteria...")
            try:
                competitor_responses, criteria_responses = await asyncio.gather(
                    self.fanout.get_competitors(target),
                    self.fanout.get_criteria(target),
                )
            except Exception as e:
                logger.error("fanout_stage_failed", error=str(e))
                self._report("idle", "")
                raise PipelineError(f"Could not query models: {e}") from e

            all_competitors = unique_entities(competitor_responses)
            all_criteria = unique_entities(criteria_responses)
            if not all_competitors and not all_criteria:
                logger.warning("no_model_data", models=len(self.fanout.models))

            self._report("normalizing", "Normalizing and deduplicating results...")
            competitor_norm, criteria_norm = await asyncio.gather(
                self.normalizer.normalize(all_competitors, target, "competitors"),
                self.normalizer.normalize(all_criteria, target, "criteria"),
            )

            competitors = aggregate_competitors(
                competitor_responses, competitor_norm.mapping, top_k=self.config.top_k
            )
            criteria = aggregate_criteria(
                criteria_responses, criteria_norm.mapping, top_k=self.config.top_k
            )

            result = AnalysisResult(
                target=target,
                competitors=competitors,
                criteria=criteria,
                table=AnalysisResult.empty_table(len(competitors), len(criteria)),
                raw_responses=RawResponses(
                    competitors=competitor_responses,
                    criteria=criteria_responses,
                ),
            )

            self._report("complete", "Analysis complete!")
            logger.info(
                "analysis_complete",
                competitors=len(competitors),
                criteria=len(criteria),
            )
            return result


async def run_analysis(
    target: str,
    openrouter_api_key: str,
    groq_api_key: str,
    config: Optional[AnalysisConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> AnalysisResult:
    """
    Build clients from API keys, run one analysis and close the clients.

    Args:
        target: Product or company to analyze
        openrouter_api_key: Key for the fan-out models
        groq_api_key: Key for normalization
        config: Analysis configuration (defaults if omitted)
        progress_callback: Called with (stage, message) on each stage change

    Returns:
        AnalysisResult
    """
    config = config or AnalysisConfig()
    async with OpenRouterClient(openrouter_api_key, timeout=config.fanout.request_timeout) as router, \
            GroqClient(groq_api_key, timeout=config.normalizer.request_timeout) as groq:
        pipeline = AnalysisPipeline(
            fanout=QueryFanout(router, config.fanout),
            normalizer=EntityNormalizer(groq, config.normalizer),
            config=config,
            progress_callback=progress_callback,
        )
        return await pipeline.run(target)


def build_cell_resolver(groq_api_key: str, config: Optional[AnalysisConfig] = None) -> CellResolver:
    """Create a CellResolver with its own Groq client (caller closes resolver.client)."""
    config = config or AnalysisConfig()
    return CellResolver(
        GroqClient(groq_api_key, timeout=config.cells.request_timeout),
        config.cells,
    )
