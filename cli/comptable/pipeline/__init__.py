"""Pipeline - Parsing, normalization, aggregation and cell resolution."""
