"""
Shared test data for the portfolio return engine

Includes:
- Request files (YAML, JSON)
- Long-format price, dividend and benchmark CSVs
- Chart payload fixtures for ingestion tests
"""
