"""Export module for comparison tables."""

from .formats import export_csv, export_json, load_result, load_result_with_store
from .exporter import ResultExporter

__all__ = ["export_csv", "export_json", "load_result", "load_result_with_store", "ResultExporter"]
