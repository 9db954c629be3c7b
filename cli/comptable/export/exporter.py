"""Result exporter for comparison tables."""

from pathlib import Path
from typing import Literal, Optional

from comptable.models.output import AnalysisResult, CellStore

from .formats import export_csv, export_json


ExportFormat = Literal["csv", "json"]

EXPECTED_EXTENSIONS = {
    "csv": ".csv",
    "json": ".json",
}


class ResultExporter:
    """
    High-level result exporter.

    Supports:
    - CSV: the comparison grid, one row per competitor
    - JSON: the full result including raw per-model responses

    Example:
        exporter = ResultExporter()
        exporter.export(result, "tesla.csv", format="csv", store=store)
        exporter.export_all(result, "output/tesla", store=store)
    """

    def export(
        self,
        result: AnalysisResult,
        output_path: str | Path,
        format: ExportFormat = "csv",
        store: Optional[CellStore] = None,
    ) -> Path:
        """
        Export a result to the given format.

        Args:
            result: Analysis result
            output_path: Path to output file (extension corrected to match format)
            format: Export format (csv, json)
            store: Optional cell answers to merge into the grid

        Returns:
            Path to exported file
        """
        if format not in EXPECTED_EXTENSIONS:
            raise ValueError(f"Unsupported format: {format}")

        output_path = Path(output_path)
        if output_path.suffix != EXPECTED_EXTENSIONS[format]:
            output_path = output_path.with_suffix(EXPECTED_EXTENSIONS[format])

        output_path.parent.mkdir(parents=True, exist_ok=True)

        if format == "csv":
            export_csv(result, output_path, store)
        else:
            export_json(result, output_path, store)

        return output_path

    def export_all(
        self,
        result: AnalysisResult,
        output_base: str | Path,
        store: Optional[CellStore] = None,
    ) -> dict[str, Path]:
        """
        Export a result to every supported format.

        Args:
            result: Analysis result
            output_base: Base path for output files (without extension)
            store: Optional cell answers

        Returns:
            Dictionary mapping format to output path
        """
        return {
            format: self.export(result, output_base, format, store)
            for format in EXPECTED_EXTENSIONS
        }

    def get_stats(self, result: AnalysisResult) -> dict:
        """Summary counts for a result, including how many models failed."""
        raw = result.raw_responses
        failed = sum(1 for r in raw.competitors + raw.criteria if not r.ok)
        return {
            "target": result.target,
            "competitors": len(result.competitors),
            "criteria": len(result.criteria),
            "model_calls": len(raw.competitors) + len(raw.criteria),
            "failed_model_calls": failed,
        }
