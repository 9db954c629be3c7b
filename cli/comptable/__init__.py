"""comptable - Crowdsourced competitor comparison tables.

Asks several LLMs for the competitors of a target product or company and the
criteria to compare them on, normalizes and merges the answers into ranked
lists, and fills the comparison grid cell by cell on demand.
"""

__version__ = "0.1.0"
