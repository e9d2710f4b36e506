"""Fixed-point driver: apply the deduction rules until nothing changes."""

from enum import Enum
from typing import Iterable, Optional

from .model import DEFAULT_SHAPE, GridShape, GridState
from .rules import RULES, StepResult, auto_fill, combine
from src.utils.trace import Tracer, get_tracer


class PropagationResult(Enum):
    INVALID = "invalid"
    STALLED = "stalled"  # locally consistent, possibly incomplete


def run_round(state: GridState, tracer: Optional[Tracer] = None) -> StepResult:
    """One sweep of every rule in order, then direct-constraint elimination."""
    tracer = tracer or get_tracer()
    result = StepResult.NO_CHANGE
    for rule in RULES:
        result = combine(result, rule(state, tracer))
        if result is StepResult.INVALID:
            return result
    return combine(result, auto_fill(state))


def propagate(
    state: GridState, init: bool = False, tracer: Optional[Tracer] = None
) -> PropagationResult:
    """
    Run rounds until one reports no change (STALLED) or a contradiction shows up
    (INVALID). Marks only move POSSIBLE -> ELIMINATED and cells only go from
    unset to set, so the loop terminates.
    """
    tracer = tracer or get_tracer()
    if init:
        auto_fill(state, init=True)

    round_number = 0
    result = StepResult.PROGRESS
    while result is StepResult.PROGRESS:
        round_number += 1
        result = run_round(state, tracer)
        tracer.log_round(round_number, result.value)

    if result is StepResult.INVALID:
        return PropagationResult.INVALID
    return PropagationResult.STALLED


def prepare(raw: Iterable[int], shape: GridShape = DEFAULT_SHAPE) -> GridState:
    """Import a raw grid and seed its candidate marks."""
    state = GridState.from_raw(raw, shape)
    auto_fill(state, init=True)
    return state
