"""Errors raised by the portfolio engine."""

from __future__ import annotations


class PortfolioEngineError(Exception):
    """Base class for all engine errors."""


class MalformedInputError(PortfolioEngineError, ValueError):
    """Input records or allocations failed validation.

    Raised before any computation proceeds, so callers never see
    partial results.
    """


class InsightNotFoundError(PortfolioEngineError, KeyError):
    """A lifecycle operation referenced an insight id that is not stored."""

    def __init__(self, insight_id: str):
        self.insight_id = insight_id
        super().__init__(f"Insight {insight_id} not found")

    def __str__(self) -> str:
        return f"Insight {self.insight_id} not found"
