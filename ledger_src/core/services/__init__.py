# core/services/__init__.py
"""
Services package for the analytics pipeline.

Each service consumes the same normalized transaction snapshot and
returns fresh result models. Services are UI-agnostic.
"""

from .aggregator import aggregate_positions, sort_positions
from .dividends import calculate_dividend_summary, calculate_dividend_yields
from .activity import build_heatmap, calculate_trading_metrics
from .partial_data import detect_partial_data

__all__ = [
    "aggregate_positions",
    "sort_positions",
    "calculate_dividend_summary",
    "calculate_dividend_yields",
    "calculate_trading_metrics",
    "build_heatmap",
    "detect_partial_data",
]
