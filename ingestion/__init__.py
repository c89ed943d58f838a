"""
Data Ingestion Module

Turns provider data into engine input series:
- Chart payloads (timestamp, close, dividend events)
- Long-format price and dividend DataFrames
"""

__version__ = "0.1.0"
