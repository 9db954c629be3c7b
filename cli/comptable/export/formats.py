"""Export formats for comparison tables."""

import csv
import json
from pathlib import Path
from typing import Any, Optional

from comptable.models.output import (
    AnalysisResult,
    CellAnswer,
    CellStore,
    CompetitorDescription,
    Criterion,
)


def criterion_header(criterion: Criterion) -> str:
    """Column header with unit and scale, e.g. "Price (USD)"."""
    header = criterion.name
    if criterion.unit:
        header += f" ({criterion.unit})"
    if criterion.scale:
        header += f" ({criterion.scale})"
    return header


def export_csv(
    result: AnalysisResult,
    output_path: Path,
    store: Optional[CellStore] = None,
) -> None:
    """
    Export the comparison grid to CSV.

    Columns:
    - Rank, Competitor, Kind, Parent, Frequency
    - Description (when the store holds any)
    - One column per criterion; empty when the cell was never resolved

    Args:
        result: Analysis result
        output_path: Path to output file
        store: Optional cell answers and descriptions
    """
    store = store or CellStore()
    table = store.merged_table(result)
    with_descriptions = bool(store.descriptions)

    header = ["Rank", "Competitor", "Kind", "Parent", "Frequency"]
    if with_descriptions:
        header.append("Description")
    header.extend(criterion_header(c) for c in result.criteria)

    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL)
        writer.writerow(header)

        for row_index, competitor in enumerate(result.competitors):
            row = [
                competitor.rank,
                competitor.name,
                competitor.kind,
                competitor.parent or "",
                competitor.frequency,
            ]
            if with_descriptions:
                description = store.get_description(row_index)
                row.append(description.description if description else "")
            row.extend(value or "" for value in table[row_index])
            writer.writerow(row)


def result_to_dict(result: AnalysisResult, store: Optional[CellStore] = None) -> dict[str, Any]:
    """Full result plus cell answers as plain JSON-ready data."""
    store = store or CellStore()
    data = result.model_dump(mode="json")
    data["table"] = store.merged_table(result)
    data["cell_answers"] = {
        f"{row}-{col}": cell.model_dump()
        for (row, col), cell in sorted(store.cells.items())
    }
    data["descriptions"] = {
        str(row): description.model_dump()
        for row, description in sorted(store.descriptions.items())
    }
    return data


def export_json(
    result: AnalysisResult,
    output_path: Path,
    store: Optional[CellStore] = None,
) -> None:
    """
    Export the full analysis to JSON.

    Includes the ranked lists, the merged grid, cell answers keyed
    "row-col", descriptions and the raw per-model responses.
    """
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result_to_dict(result, store), f, indent=2, ensure_ascii=False)


def _read_json(input_path: Path) -> dict[str, Any]:
    with open(input_path, "r", encoding="utf-8") as f:
        return json.load(f)


def store_from_dict(data: dict[str, Any]) -> CellStore:
    """Rebuild the cell answers and descriptions written by result_to_dict."""
    store = CellStore()
    for key, cell in (data.get("cell_answers") or {}).items():
        row, col = (int(part) for part in key.split("-"))
        store.set_cell(row, col, CellAnswer.model_validate(cell))
    for key, description in (data.get("descriptions") or {}).items():
        store.set_description(int(key), CompetitorDescription.model_validate(description))
    return store


def load_result_with_store(input_path: Path) -> tuple[AnalysisResult, CellStore]:
    """Load a result together with the cell answers and descriptions saved beside it."""
    data = _read_json(input_path)
    store = store_from_dict(data)
    for key in ("cell_answers", "descriptions"):
        data.pop(key, None)
    return AnalysisResult.model_validate(data), store


def load_result(input_path: Path) -> AnalysisResult:
    """Load an AnalysisResult previously written by export_json."""
    return load_result_with_store(input_path)[0]
