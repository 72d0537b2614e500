"""Exception hierarchy shared by the engine and its surfaces."""

from __future__ import annotations


class ExpenseDashboardError(Exception):
    """Base class for errors raised by this package."""


class ExpenseValidationError(ExpenseDashboardError):
    """A request did not carry a usable list of expenses."""


class TipProviderError(ExpenseDashboardError):
    """The external tip provider failed or returned something unusable.

    Always recovered by falling back to the heuristic analyzer.
    """
