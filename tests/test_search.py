"""Tests for branch selection and the search modes."""

import random
import sys

from grids import (
    EASY_9X9,
    GRID_2X3,
    HARDEST_9X9,
    MANY_SOLUTIONS_9X9,
    brute_force_count,
    pattern_solution,
)
from src.sudoku.model import GridShape, GridState, Mark
from src.sudoku.propagation import prepare
from src.sudoku.search import (
    SearchMode,
    SolveStatus,
    count_solutions,
    find_any,
    find_unique,
    min_depth_to_unique,
    pick_branch_cell,
    search,
)

SHAPE_9 = GridShape(3, 3)
SHAPE_4 = GridShape(2, 2)
SHAPE_6 = GridShape(2, 3)


def _consistent_with(grid, givens):
    return all(g == 0 or g == v for g, v in zip(givens, grid))


def test_pick_branch_cell_prefers_fewest_candidates_then_row_major():
    state = prepare([0] * 16, SHAPE_4)
    assert pick_branch_cell(state) == 0
    state.set_mark(9, 1, Mark.ELIMINATED)
    state.set_mark(6, 2, Mark.ELIMINATED)
    assert pick_branch_cell(state) == 6
    state.set_mark(9, 3, Mark.ELIMINATED)
    assert pick_branch_cell(state) == 9


def test_pick_branch_cell_skips_assigned_and_reports_complete():
    solution = pattern_solution(SHAPE_4)
    assert pick_branch_cell(prepare(solution, SHAPE_4)) is None
    raw = list(solution)
    raw[11] = 0
    assert pick_branch_cell(prepare(raw, SHAPE_4)) == 11


def test_pick_branch_cell_finds_dead_cell_after_a_single():
    state = prepare([0] * 16, SHAPE_4)
    for value in (1, 2, 3):
        state.set_mark(2, value, Mark.ELIMINATED)
    for value in range(1, 5):
        state.set_mark(13, value, Mark.ELIMINATED)
    assert state.candidate_count(2) == 1
    assert pick_branch_cell(state) == 13


def test_blank_4x4_has_288_solutions():
    result = count_solutions(prepare([0] * 16, SHAPE_4))
    assert result.status is SolveStatus.MULTIPLE
    assert result.solutions == 288
    assert SHAPE_4.is_solution(result.grid.to_raw())


def test_count_matches_brute_force_oracle():
    rng = random.Random(7)
    for shape, blanks in ((SHAPE_4, 6), (SHAPE_4, 8), (SHAPE_6, 5)):
        solution = pattern_solution(shape)
        for _ in range(3):
            raw = list(solution)
            for cell in rng.sample(range(shape.total_cells), blanks):
                raw[cell] = 0
            expected = brute_force_count(raw, shape)
            result = count_solutions(prepare(raw, shape))
            assert result.solutions == expected
            assert expected >= 1
            assert shape.is_solution(result.grid.to_raw())


def test_count_on_contradiction_is_zero():
    raw = [0] * 16
    raw[0] = raw[1] = 1
    result = count_solutions(prepare(raw, SHAPE_4))
    assert result.status is SolveStatus.INVALID
    assert result.solutions == 0
    assert result.grid is None


def test_contradiction_is_found_without_guessing():
    raw = [0] * 81
    raw[10] = raw[16] = 9
    result = find_unique(prepare(raw, SHAPE_9))
    assert result.status is SolveStatus.INVALID
    assert result.nodes == 1


def test_find_unique_on_hardest_grid():
    result = find_unique(prepare(HARDEST_9X9, SHAPE_9))
    assert result.status is SolveStatus.UNIQUE
    assert result.solutions == 1
    solved = result.grid.to_raw()
    assert SHAPE_9.is_solution(solved)
    assert _consistent_with(solved, HARDEST_9X9)


def test_min_depth_of_hardest_grid_needs_guessing():
    result = min_depth_to_unique(prepare(HARDEST_9X9, SHAPE_9))
    assert result.status is SolveStatus.UNIQUE
    assert result.depth is not None and result.depth > 0


def test_min_depth_zero_when_propagation_suffices():
    solution = pattern_solution(SHAPE_9)
    raw = list(solution)
    for cell in (0, 13, 26, 30, 44, 52, 60, 71, 80):
        raw[cell] = 0
    result = min_depth_to_unique(prepare(raw, SHAPE_9))
    assert result.status is SolveStatus.UNIQUE
    assert result.depth == 0
    assert result.nodes == 1
    assert result.grid.to_raw() == tuple(solution)


def test_find_unique_reports_multiple():
    result = find_unique(prepare(MANY_SOLUTIONS_9X9, SHAPE_9))
    assert result.status is SolveStatus.MULTIPLE
    assert result.solutions == 2
    assert result.depth is None
    assert SHAPE_9.is_solution(result.grid.to_raw())
    assert _consistent_with(result.grid.to_raw(), MANY_SOLUTIONS_9X9)


def test_min_depth_reports_multiple_without_depth():
    result = min_depth_to_unique(prepare([0] * 16, SHAPE_4))
    assert result.status is SolveStatus.MULTIPLE
    assert result.depth is None


def test_blank_9x9_find_unique_with_seed_terminates():
    result = find_unique(prepare([0] * 81, SHAPE_9), rng=random.Random(42))
    assert result.status is SolveStatus.MULTIPLE
    assert SHAPE_9.is_solution(result.grid.to_raw())


def test_find_any_is_seeded_and_reproducible():
    first = find_any(prepare([0] * 81, SHAPE_9), rng=random.Random(3)).grid.to_raw()
    second = find_any(prepare([0] * 81, SHAPE_9), rng=random.Random(3)).grid.to_raw()
    assert first == second
    assert SHAPE_9.is_solution(first)


def test_search_leaves_callers_state_untouched():
    state = prepare(EASY_9X9, SHAPE_9)
    snapshot = state.copy()
    search(state, SearchMode.COUNT_ALL)
    assert state == snapshot


def test_easy_grid_round_trips_through_raw():
    result = find_unique(prepare(EASY_9X9, SHAPE_9))
    assert result.status is SolveStatus.UNIQUE
    solved = result.grid.to_raw()
    again = GridState.from_raw(solved, SHAPE_9)
    assert again.assigned == result.grid.assigned
    assert find_unique(prepare(solved, SHAPE_9)).grid.to_raw() == solved
    assert _consistent_with(result.grid.to_raw(), EASY_9X9)


def test_non_square_blocks_solve():
    result = count_solutions(prepare(GRID_2X3, SHAPE_6))
    assert result.solutions >= 1
    solved = result.grid.to_raw()
    assert SHAPE_6.is_solution(solved)
    assert _consistent_with(solved, GRID_2X3)


def test_search_raises_recursion_limit_for_large_grids(monkeypatch):
    raised = []
    monkeypatch.setattr(sys, "getrecursionlimit", lambda: 50)
    monkeypatch.setattr(sys, "setrecursionlimit", raised.append)
    search(prepare(pattern_solution(SHAPE_9), SHAPE_9), SearchMode.FIND_UNIQUE)
    assert raised == [81 * 2 + 200]
