"""Integration-style tests for the top-level solve interface."""

import random

import pytest

from grids import GRID_2X3, HARDEST_9X9, MANY_SOLUTIONS_9X9
from solver import MODES, solve_grid
from src.sudoku.model import GridShape
from src.sudoku.propagation import prepare
from src.sudoku.search import SearchMode, SolveStatus


def test_solver_solves_hardest_grid_with_inferred_shape():
    result = solve_grid(HARDEST_9X9)

    assert result.status is SolveStatus.UNIQUE, "Solver should prove a single solution"
    solved = result.grid.to_raw()
    assert GridShape(3, 3).is_solution(solved)
    assert all(g == 0 or g == v for g, v in zip(HARDEST_9X9, solved))


def test_solver_accepts_mode_names():
    assert set(MODES) == {"any", "unique", "count", "depth"}
    result = solve_grid(MANY_SOLUTIONS_9X9, mode="any", rng=random.Random(1))
    assert result.status is SolveStatus.UNIQUE
    assert result.solutions == 1
    depth = solve_grid(HARDEST_9X9, mode=SearchMode.MIN_DEPTH)
    assert depth.depth is not None and depth.depth > 0


def test_solver_needs_shape_for_non_square_blocks():
    with pytest.raises(ValueError):
        solve_grid(GRID_2X3)
    result = solve_grid(GRID_2X3, shape=GridShape(2, 3), mode="count")
    assert result.solutions == 1


def test_solver_accepts_prepared_state():
    state = prepare(GRID_2X3, GridShape(2, 3))
    assert solve_grid(state).status is SolveStatus.UNIQUE


def test_solver_rejects_bad_input():
    with pytest.raises(ValueError):
        solve_grid(HARDEST_9X9, mode="fastest")
    with pytest.raises(TypeError):
        solve_grid("not a grid")
