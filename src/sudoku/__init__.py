"""Constraint propagation, backtracking search and puzzle generation for block-structured Latin-square grids."""

from .model import GridShape, GridState, InvariantViolation, Mark
from .propagation import PropagationResult, prepare, propagate
from .search import SearchMode, SearchResult, SolveStatus, search
from .generator import GeneratorConfig, PuzzleGenerator

__all__ = [
    "GridShape",
    "GridState",
    "InvariantViolation",
    "Mark",
    "PropagationResult",
    "prepare",
    "propagate",
    "SearchMode",
    "SearchResult",
    "SolveStatus",
    "search",
    "GeneratorConfig",
    "PuzzleGenerator",
]
