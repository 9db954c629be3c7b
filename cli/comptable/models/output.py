"""Output Models - Data structures for model responses and analysis results."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


EntityKind = Literal["competitors", "criteria"]
CompetitorKind = Literal["company", "product", "brand"]
ValueType = Literal["quantitative", "binary", "qualitative", "categorical"]
AnalysisStage = Literal["idle", "fetching", "normalizing", "complete"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawModelResponse(BaseModel):
    """One model's answer to one prompt, either a list of items or a failure."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Model identifier")
    kind: EntityKind = Field(default="competitors", description="What the items are")
    items: Optional[list[str]] = Field(default=None, description="Extracted items, absent on failure")
    failure: Optional[str] = Field(default=None, description="Error description")

    @property
    def ok(self) -> bool:
        """True when the response contributes items to aggregation."""
        return self.failure is None and self.items is not None


def failed_response(model: str, kind: EntityKind, reason: str) -> RawModelResponse:
    """Build the failure form of a response (transport and parse errors alike)."""
    return RawModelResponse(model=model, kind=kind, items=None, failure=reason)


class NormalizationResult(BaseModel):
    """Raw entity string -> canonical name, plus canonical -> raw variants."""

    model_config = ConfigDict(frozen=True)

    mapping: dict[str, str] = Field(default_factory=dict)
    groups: dict[str, list[str]] = Field(default_factory=dict)
    fallback: bool = Field(default=False, description="True when the identity map was substituted")

    @classmethod
    def identity(cls, entities: list[str]) -> "NormalizationResult":
        """Every entity maps to itself."""
        return cls(
            mapping={e: e for e in entities},
            groups={e: [e] for e in entities},
            fallback=True,
        )


class RankedEntity(BaseModel):
    """A canonical entity after aggregation."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Canonical name")
    frequency: int = Field(..., ge=1, description="Raw mentions across all models")
    rank: int = Field(..., ge=1, description="1-based position by frequency")


class Competitor(RankedEntity):
    """A ranked competitor."""

    kind: CompetitorKind = "company"
    parent: Optional[str] = Field(default=None, description="Owning company when kind is product")


class Criterion(RankedEntity):
    """A ranked comparison criterion."""

    value_type: ValueType = "qualitative"
    unit: Optional[str] = None
    scale: Optional[str] = None


class RawResponses(BaseModel):
    """Per-model outcomes kept for the audit view."""

    model_config = ConfigDict(frozen=True)

    competitors: list[RawModelResponse] = Field(default_factory=list)
    criteria: list[RawModelResponse] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """The outcome of one analysis run."""

    model_config = ConfigDict(frozen=True)

    target: str
    competitors: list[Competitor] = Field(default_factory=list)
    criteria: list[Criterion] = Field(default_factory=list)
    table: list[list[Optional[str]]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)
    raw_responses: RawResponses = Field(default_factory=RawResponses)

    @staticmethod
    def empty_table(rows: int, cols: int) -> list[list[Optional[str]]]:
        """Grid of None reserved for on-demand cell answers."""
        return [[None] * cols for _ in range(rows)]


class CellAnswer(BaseModel):
    """Short factual answer for one (competitor, criterion) cell."""

    competitor: str
    criterion: str
    answer: str
    error: bool = False


class CompetitorDescription(BaseModel):
    """One-sentence description of a competitor."""

    competitor: str
    description: str
    error: bool = False


@dataclass
class CellStore:
    """
    Cell answers and descriptions for one AnalysisResult.

    Kept apart from the result itself; each entry has its own key so
    concurrent writers never touch the same slot.
    """

    cells: dict[tuple[int, int], CellAnswer] = field(default_factory=dict)
    descriptions: dict[int, CompetitorDescription] = field(default_factory=dict)

    def set_cell(self, competitor_index: int, criterion_index: int, answer: CellAnswer) -> None:
        self.cells[(competitor_index, criterion_index)] = answer

    def get_cell(self, competitor_index: int, criterion_index: int) -> Optional[CellAnswer]:
        return self.cells.get((competitor_index, criterion_index))

    def set_description(self, competitor_index: int, description: CompetitorDescription) -> None:
        self.descriptions[competitor_index] = description

    def get_description(self, competitor_index: int) -> Optional[CompetitorDescription]:
        return self.descriptions.get(competitor_index)

    def merged_table(self, result: AnalysisResult) -> list[list[Optional[str]]]:
        """Return the result's grid with every known answer filled in."""
        table = [list(row) for row in result.table]
        for (row, col), cell in self.cells.items():
            if row < len(table) and col < len(table[row]):
                table[row][col] = cell.answer
        return table

    def clear(self) -> None:
        self.cells.clear()
        self.descriptions.clear()
