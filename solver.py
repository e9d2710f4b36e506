"""Top-level solve interface.

Expose `solve_grid(grid)` that accepts either a prepared `GridState` or a raw
row-major sequence of ints (0 for blank).
"""

import random
from typing import Any, Optional

from src.sudoku.model import GridShape, GridState, shape_for
from src.sudoku.propagation import prepare
from src.sudoku.search import SearchMode, SearchResult, search

MODES = {mode.value: mode for mode in SearchMode}


def solve_grid(
    grid: Any,
    shape: Optional[GridShape] = None,
    mode: Any = SearchMode.FIND_UNIQUE,
    rng: Optional[random.Random] = None,
) -> SearchResult:
    """
    Classify a grid and return the search result.
    Accepts:
      - GridState instances (used as-is; candidates must already be seeded)
      - Raw grids as lists/tuples of ints; the shape is inferred for square
        blocks (16, 81, 256, ... cells) when not given
    `mode` is a SearchMode or one of its values: "any", "unique", "count", "depth".
    """
    if isinstance(mode, str):
        if mode not in MODES:
            raise ValueError(f"Unknown mode {mode!r}; expected one of {', '.join(MODES)}")
        mode = MODES[mode]

    if isinstance(grid, GridState):
        state = grid
    elif isinstance(grid, (list, tuple)):
        shape = shape or shape_for(len(grid))
        if shape is None:
            raise ValueError(f"Cannot infer block shape for {len(grid)} cells; pass shape=")
        state = prepare(grid, shape)
    else:
        raise TypeError("solve_grid expects a GridState or a sequence of ints")

    return search(state, mode, rng=rng)


__all__ = ["solve_grid", "MODES"]
