"""Tests for the fixed-point driver."""

from grids import EASY_9X9, HARDEST_9X9, double_seven_block, pattern_solution
from src.sudoku.model import GridShape, GridState, Mark
from src.sudoku.propagation import PropagationResult, prepare, propagate, run_round
from src.sudoku.rules import StepResult

SHAPE = GridShape(3, 3)


def test_blank_grid_init_marks_everything_possible():
    state = GridState.empty(SHAPE)
    assert propagate(state, init=True) is PropagationResult.STALLED
    assert state.assigned == [0] * 81
    assert set(state.marks) == {Mark.POSSIBLE}


def test_single_blank_is_filled_in_one_round():
    solution = pattern_solution(SHAPE)
    raw = list(solution)
    missing = raw[40]
    raw[40] = 0
    state = prepare(raw, SHAPE)
    assert run_round(state) is StepResult.PROGRESS
    assert state.is_complete()
    assert state.assigned[40] == missing
    assert propagate(state) is PropagationResult.STALLED
    assert state.to_raw() == tuple(solution)


def test_duplicate_in_row_is_invalid():
    raw = [0] * 81
    raw[0] = 4
    raw[7] = 4
    assert propagate(prepare(raw, SHAPE)) is PropagationResult.INVALID


def test_two_cells_of_a_block_forced_to_seven_is_invalid():
    state = prepare(double_seven_block(), SHAPE)
    for cell in (0, 1, 10):
        assert state.candidates(cell) == [7]
    assert propagate(state) is PropagationResult.INVALID


def test_propagate_is_idempotent_once_stalled():
    state = prepare(HARDEST_9X9, SHAPE)
    assert propagate(state) is PropagationResult.STALLED
    snapshot = state.copy()
    assert run_round(state) is StepResult.NO_CHANGE
    assert state == snapshot
    assert propagate(state) is PropagationResult.STALLED
    assert state == snapshot


def test_rounds_only_add_eliminations_and_assignments():
    state = prepare(EASY_9X9, SHAPE)
    eliminated = state.eliminated()
    filled = {i for i, v in enumerate(state.assigned) if v}
    result = StepResult.PROGRESS
    while result is StepResult.PROGRESS:
        result = run_round(state)
        now_eliminated = state.eliminated()
        now_filled = {i for i, v in enumerate(state.assigned) if v}
        assert eliminated <= now_eliminated
        assert filled <= now_filled
        for cell in filled:
            assert state.assigned[cell] == EASY_9X9[cell] or EASY_9X9[cell] == 0
        eliminated, filled = now_eliminated, now_filled
    assert result is StepResult.NO_CHANGE


def test_propagation_keeps_givens():
    state = prepare(EASY_9X9, SHAPE)
    propagate(state)
    for cell, value in enumerate(EASY_9X9):
        if value:
            assert state.assigned[cell] == value


def test_propagation_on_non_square_blocks():
    shape = GridShape(2, 3)
    solution = pattern_solution(shape)
    raw = list(solution)
    for cell in (0, 7, 14, 21, 28, 35):
        raw[cell] = 0
    state = prepare(raw, shape)
    assert propagate(state) is PropagationResult.STALLED
    assert state.to_raw() == tuple(solution)
