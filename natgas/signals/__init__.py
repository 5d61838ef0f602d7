"""
Signals Package - Multi-Timeframe Natural Gas Signal Engine

Contains:
- models: Candle, indicator snapshot and signal dataclasses
- resampler: Candle frames, 1H -> 3H aggregation, live price injection
- rules: Weighted indicator rule table, timeframe weights, threshold revisions
- timeframe: Per-timeframe indicator snapshot and bias scoring
- engine: Overall signal, market condition, futures setups and SignalEngine facade
"""

__version__ = "0.1.0"
