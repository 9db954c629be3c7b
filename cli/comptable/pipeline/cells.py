"""On-Demand Cell Resolver - Short factual answers for table cells."""

import asyncio
import re
from dataclasses import dataclass
from typing import Callable, Optional

from comptable.llm.openrouter import ChatClient, build_messages
from comptable.logging import get_logger
from comptable.models.config import CellConfig
from comptable.models.output import (
    AnalysisResult,
    CellAnswer,
    CellStore,
    CompetitorDescription,
)
from comptable.prompts import load_and_format, load_prompt

logger = get_logger("comptable.pipeline.cells")

ERROR_ANSWER = "Error"
UNKNOWN_ANSWER = "Unknown"
MAX_ANSWER_WORDS = 5
MAX_DESCRIPTION_WORDS = 25

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_UNCLOSED_THINK = re.compile(r"<think>.*$", re.DOTALL | re.IGNORECASE)
_LEADING_LABEL = re.compile(r"^(Answer only:|Answer:|A:|Response:)\s*", re.IGNORECASE)
_DESCRIPTION_LABEL = re.compile(r"^(Description:|Answer:)\s*", re.IGNORECASE)


def _strip_reasoning(text: str) -> str:
    text = _THINK_BLOCK.sub("", text)
    # Truncated output can leave a block open
    return _UNCLOSED_THINK.sub("", text).strip()


def _first_line(text: str) -> str:
    return text.split("\n", 1)[0].strip()


def _truncate_words(text: str, limit: int) -> str:
    words = text.split()
    if len(words) > limit:
        return " ".join(words[:limit])
    return text


def clean_answer(text: str, max_words: int = MAX_ANSWER_WORDS) -> str:
    """
    Reduce raw model text to a short cell answer.

    Drops <think> blocks and a leading "Answer:" style label, keeps the
    first line and at most max_words words. Empty results become "Unknown".
    """
    text = _strip_reasoning(text)
    text = _LEADING_LABEL.sub("", text)
    text = _truncate_words(_first_line(text), max_words)
    return text or UNKNOWN_ANSWER


def clean_description(text: str) -> str:
    text = _DESCRIPTION_LABEL.sub("", _strip_reasoning(text))
    text = _truncate_words(_first_line(text), MAX_DESCRIPTION_WORDS)
    return text or UNKNOWN_ANSWER


@dataclass
class CellRequest:
    """One pending cell or description lookup in bulk mode."""

    competitor_index: int
    criterion_index: Optional[int] = None  # None for a description

    @property
    def is_description(self) -> bool:
        return self.criterion_index is None


class CellResolver:
    """
    Resolves individual (competitor, criterion) cells.

    Every call returns a value; failures come back as error-flagged
    answers so one bad cell never affects the rest of the table.
    """

    def __init__(self, client: ChatClient, config: Optional[CellConfig] = None):
        self.client = client
        self.config = config or CellConfig()

    async def _ask(self, prompt: str, system_prompt: str, max_tokens: int) -> str:
        return await asyncio.wait_for(
            self.client.chat(
                build_messages(prompt, system_prompt),
                model=self.config.model,
                temperature=self.config.temperature,
                max_tokens=max_tokens,
            ),
            timeout=self.config.request_timeout,
        )

    async def resolve_cell(self, competitor: str, criterion: str) -> CellAnswer:
        """
        Answer one cell.

        Args:
            competitor: Canonical competitor name
            criterion: Canonical criterion name

        Returns:
            CellAnswer; answer is "Error" and error is True on failure
        """
        prompt = load_and_format("cells", "answer", competitor=competitor, criterion=criterion)
        try:
            content = await self._ask(prompt, load_prompt("cells", "system"), self.config.max_tokens)
        except Exception as e:
            logger.warning(
                "cell_answer_failed",
                competitor=competitor,
                criterion=criterion,
                error=str(e) or type(e).__name__,
            )
            return CellAnswer(competitor=competitor, criterion=criterion, answer=ERROR_ANSWER, error=True)

        return CellAnswer(competitor=competitor, criterion=criterion, answer=clean_answer(content))

    async def describe_competitor(self, competitor: str, context: str) -> CompetitorDescription:
        """One-sentence description of a competitor, with the same failure policy as cells."""
        prompt = load_and_format("cells", "describe", competitor=competitor, context=context)
        try:
            content = await self._ask(
                prompt,
                load_prompt("cells", "describe_system"),
                self.config.description_max_tokens,
            )
        except Exception as e:
            logger.warning("description_failed", competitor=competitor, error=str(e) or type(e).__name__)
            return CompetitorDescription(competitor=competitor, description=ERROR_ANSWER, error=True)

        return CompetitorDescription(competitor=competitor, description=clean_description(content))

    async def refresh_cell(
        self,
        result: AnalysisResult,
        store: CellStore,
        competitor_index: int,
        criterion_index: int,
    ) -> CellAnswer:
        """Resolve one cell of a result and overwrite whatever the store held."""
        answer = await self.resolve_cell(
            result.competitors[competitor_index].name,
            result.criteria[criterion_index].name,
        )
        store.set_cell(competitor_index, criterion_index, answer)
        return answer

    async def _process_request(
        self, request: CellRequest, result: AnalysisResult, store: CellStore
    ) -> None:
        competitor = result.competitors[request.competitor_index].name
        if request.is_description:
            description = await self.describe_competitor(competitor, result.target)
            store.set_description(request.competitor_index, description)
        else:
            await self.refresh_cell(result, store, request.competitor_index, request.criterion_index)

    async def resolve_all(
        self,
        result: AnalysisResult,
        store: CellStore,
        include_descriptions: bool = True,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> CellStore:
        """
        Fill every cell (and description) of a result.

        Requests run in fixed-size batches; each batch runs concurrently and
        the resolver pauses between batches to stay under provider rate limits.

        Args:
            result: Analysis result whose grid to fill
            store: Store receiving the answers
            include_descriptions: Also describe each competitor
            progress_callback: Called with (completed, total) after each batch

        Returns:
            The same store, filled
        """
        requests = []
        for row in range(len(result.competitors)):
            if include_descriptions:
                requests.append(CellRequest(competitor_index=row))
            for col in range(len(result.criteria)):
                requests.append(CellRequest(competitor_index=row, criterion_index=col))

        batch_size = self.config.batch_size
        batches = [requests[i:i + batch_size] for i in range(0, len(requests), batch_size)]
        logger.info("bulk_resolve_started", requests=len(requests), batches=len(batches))

        completed = 0
        for i, batch in enumerate(batches):
            if i > 0 and self.config.batch_delay > 0:
                await asyncio.sleep(self.config.batch_delay)
            await asyncio.gather(*(self._process_request(r, result, store) for r in batch))
            completed += len(batch)
            if progress_callback:
                progress_callback(completed, len(requests))

        errors = sum(1 for cell in store.cells.values() if cell.error)
        logger.info("bulk_resolve_complete", requests=len(requests), cell_errors=errors)
        return store
