"""Backtracking search with the minimum-remaining-values branch heuristic.

Every node works on its own copy of the grid: propagate, stop if the grid is
dead or complete, otherwise guess each candidate of the most constrained cell
on a fresh clone and recurse. How child results are combined depends on the
`SearchMode`.
"""

import random
import sys
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .model import GridState, InvariantViolation
from .propagation import PropagationResult, propagate
from src.utils.trace import Tracer, get_tracer


class SolveStatus(Enum):
    INVALID = "invalid"
    UNIQUE = "unique"
    MULTIPLE = "multiple"
    UNKNOWN = "unknown"  # internal sentinel, never returned by the public helpers


class SearchMode(Enum):
    FIND_ANY = "any"
    FIND_UNIQUE = "unique"
    COUNT_ALL = "count"
    MIN_DEPTH = "depth"


@dataclass
class SearchResult:
    status: SolveStatus
    solutions: int = 0
    grid: Optional[GridState] = None
    depth: Optional[int] = None
    nodes: int = 0


def pick_branch_cell(state: GridState) -> Optional[int]:
    """Unassigned cell with the fewest possible values; ties go to the first in row-major order."""
    best_cell: Optional[int] = None
    best_count = state.shape.side + 1
    for cell, value in enumerate(state.assigned):
        if value:
            continue
        count = state.candidate_count(cell)
        if count < best_count:
            best_cell, best_count = cell, count
            if count == 0:
                break
    return best_cell


def _guess_order(state: GridState, cell: int, rng: Optional[random.Random]) -> List[int]:
    values = state.candidates(cell)
    if rng is not None:
        rng.shuffle(values)
    return values


class _Search:
    def __init__(self, mode: SearchMode, rng: Optional[random.Random], tracer: Tracer):
        self.mode = mode
        self.rng = rng
        self.tracer = tracer
        self.nodes = 0

    def run(self, state: GridState, depth: int) -> SearchResult:
        self.nodes += 1
        if propagate(state, tracer=self.tracer) is PropagationResult.INVALID:
            return SearchResult(SolveStatus.INVALID)
        if state.is_complete():
            self.tracer.log_solution_found(depth)
            return SearchResult(SolveStatus.UNIQUE, solutions=1, grid=state, depth=depth)

        cell = pick_branch_cell(state)
        guesses = _guess_order(state, cell, self.rng)
        if not guesses:
            self.tracer.log_backtrack(cell, depth, reason="branch cell has no candidates")
            return SearchResult(SolveStatus.INVALID)

        total = 0
        kept: Optional[GridState] = None
        best_depth: Optional[int] = None
        for value in guesses:
            child = state.copy()
            child.assigned[cell] = value
            self.tracer.log_guess(cell, value, depth + 1, len(guesses))
            outcome = self.run(child, depth + 1)

            if outcome.status is SolveStatus.INVALID:
                continue
            if self.mode is SearchMode.FIND_ANY:
                return outcome
            if self.mode is SearchMode.COUNT_ALL:
                total += outcome.solutions
                if kept is None:
                    kept = outcome.grid
                continue

            # FIND_UNIQUE / MIN_DEPTH
            if outcome.status is SolveStatus.MULTIPLE:
                return SearchResult(SolveStatus.MULTIPLE, solutions=2, grid=outcome.grid)
            total += 1
            if total > 1:
                return SearchResult(SolveStatus.MULTIPLE, solutions=2, grid=outcome.grid)
            kept = outcome.grid
            if best_depth is None or outcome.depth < best_depth:
                best_depth = outcome.depth

        if total == 0:
            self.tracer.log_backtrack(cell, depth)
            return SearchResult(SolveStatus.INVALID)
        if self.mode is SearchMode.COUNT_ALL:
            status = SolveStatus.UNIQUE if total == 1 else SolveStatus.MULTIPLE
            return SearchResult(status, solutions=total, grid=kept)
        return SearchResult(SolveStatus.UNIQUE, solutions=1, grid=kept, depth=best_depth)


def search(
    state: GridState,
    mode: SearchMode = SearchMode.FIND_UNIQUE,
    rng: Optional[random.Random] = None,
    tracer: Optional[Tracer] = None,
) -> SearchResult:
    """
    Classify `state` under `mode`. The caller's state is never mutated; the
    completed grid (if any) is returned on the result.

    FIND_ANY stops at the first solution; COUNT_ALL explores everything;
    FIND_UNIQUE stops as soon as a second solution appears; MIN_DEPTH behaves
    like FIND_UNIQUE and also reports the guess depth of the unique solution
    (0 means propagation alone solved it).

    The search recurses once per guess, so this raises the interpreter-wide
    recursion limit (`sys.setrecursionlimit`) when it is below what the grid
    size can need. The limit is never lowered.
    """
    tracer = tracer or get_tracer()
    # One frame per guess; a guess can be needed for every cell.
    needed = state.shape.total_cells * 2 + 200
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)

    engine = _Search(mode, rng, tracer)
    result = engine.run(state.copy(), 0)
    result.nodes = engine.nodes
    if result.status is SolveStatus.UNKNOWN:
        raise InvariantViolation("search finished without classifying the grid")
    if mode is not SearchMode.MIN_DEPTH or result.status is not SolveStatus.UNIQUE:
        result.depth = None
    return result


def find_any(state: GridState, rng: Optional[random.Random] = None,
             tracer: Optional[Tracer] = None) -> SearchResult:
    return search(state, SearchMode.FIND_ANY, rng=rng, tracer=tracer)


def find_unique(state: GridState, rng: Optional[random.Random] = None,
                tracer: Optional[Tracer] = None) -> SearchResult:
    return search(state, SearchMode.FIND_UNIQUE, rng=rng, tracer=tracer)


def count_solutions(state: GridState, tracer: Optional[Tracer] = None) -> SearchResult:
    return search(state, SearchMode.COUNT_ALL, tracer=tracer)


def min_depth_to_unique(state: GridState, rng: Optional[random.Random] = None,
                        tracer: Optional[Tracer] = None) -> SearchResult:
    return search(state, SearchMode.MIN_DEPTH, rng=rng, tracer=tracer)
