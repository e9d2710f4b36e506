"""Deduction passes over a grid state.

Every rule sweeps all units of its kind and returns a `StepResult`. A rule that
returns INVALID may leave the state partially mutated; the caller must treat
the state as dead.
"""

from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .model import GridState, InvariantViolation, Mark
from src.utils.trace import Tracer, get_tracer

UNINITIALIZED = int(Mark.UNINITIALIZED)
ELIMINATED = int(Mark.ELIMINATED)
POSSIBLE = int(Mark.POSSIBLE)


class StepResult(Enum):
    INVALID = "invalid"
    NO_CHANGE = "no_change"
    PROGRESS = "progress"


def combine(a: StepResult, b: StepResult) -> StepResult:
    if a is StepResult.INVALID or b is StepResult.INVALID:
        return StepResult.INVALID
    if a is StepResult.PROGRESS or b is StepResult.PROGRESS:
        return StepResult.PROGRESS
    return StepResult.NO_CHANGE


def _outcome(changed: bool) -> StepResult:
    return StepResult.PROGRESS if changed else StepResult.NO_CHANGE


def auto_fill(state: GridState, init: bool = False) -> StepResult:
    """
    Eliminate every assigned value from the candidates of its unassigned peers.
    With `init=True` the marks of unassigned cells are first reset to POSSIBLE,
    which is how a freshly imported grid gets its candidate sets.
    """
    shape = state.shape
    side = shape.side
    assigned = state.assigned
    marks = state.marks
    changed = False
    for cell, peers in enumerate(shape.peers):
        if assigned[cell]:
            continue
        base = cell * side
        if init:
            marks[base : base + side] = [POSSIBLE] * side
        for peer in peers:
            value = assigned[peer]
            if value and marks[base + value - 1] == POSSIBLE:
                marks[base + value - 1] = ELIMINATED
                changed = True
    return _outcome(changed)


def _place_unique(
    state: GridState, unit: Sequence[int], value: int
) -> Tuple[Optional[StepResult], Optional[int]]:
    """
    Inspect `value` inside one unit. Returns (INVALID, None) on a contradiction,
    (None, cell) when exactly one live cell remains, and (None, None) otherwise.
    """
    assigned = state.assigned
    marks = state.marks
    side = state.shape.side
    times_set = 0
    live: List[int] = []
    for cell in unit:
        current = assigned[cell]
        if current == value:
            times_set += 1
        elif current == 0 and marks[cell * side + value - 1] == POSSIBLE:
            live.append(cell)
    if times_set > 1:
        return StepResult.INVALID, None
    if times_set == 1:
        return None, None
    if not live:
        return StepResult.INVALID, None
    if len(live) == 1:
        return None, live[0]
    return None, None


def unique_in_lines(state: GridState, tracer: Optional[Tracer] = None) -> StepResult:
    """Hidden singles in rows and columns."""
    tracer = tracer or get_tracer()
    shape = state.shape
    changed = False
    for index in range(shape.side):
        for value in range(1, shape.side + 1):
            for kind, unit in (("row", shape.rows[index]), ("col", shape.cols[index])):
                verdict, cell = _place_unique(state, unit, value)
                if verdict is StepResult.INVALID:
                    tracer.log_rule("unique_in_lines", "invalid", reason=f"{value} in {kind} {index + 1}")
                    return StepResult.INVALID
                if cell is not None:
                    state.assigned[cell] = value
                    changed = True
                    tracer.log_rule("unique_in_lines", "assign", cell=cell, value=value)
    return _outcome(changed)


def unique_in_blocks(state: GridState, tracer: Optional[Tracer] = None) -> StepResult:
    """Hidden singles in blocks."""
    tracer = tracer or get_tracer()
    shape = state.shape
    changed = False
    for block, unit in enumerate(shape.blocks):
        for value in range(1, shape.side + 1):
            verdict, cell = _place_unique(state, unit, value)
            if verdict is StepResult.INVALID:
                tracer.log_rule("unique_in_blocks", "invalid", reason=f"{value} in block {block}")
                return StepResult.INVALID
            if cell is not None:
                state.assigned[cell] = value
                changed = True
                tracer.log_rule("unique_in_blocks", "assign", cell=cell, value=value)
    return _outcome(changed)


def naked_singles(state: GridState, tracer: Optional[Tracer] = None) -> StepResult:
    """Assign every unassigned cell that has exactly one possible value left."""
    tracer = tracer or get_tracer()
    side = state.shape.side
    assigned = state.assigned
    marks = state.marks
    changed = False
    for cell in range(state.shape.total_cells):
        if assigned[cell]:
            continue
        base = cell * side
        count = 0
        last = 0
        for offset in range(side):
            mark = marks[base + offset]
            if mark == UNINITIALIZED:
                raise InvariantViolation(
                    f"Cell {cell} has uninitialized candidates; run auto_fill(init=True) first"
                )
            if mark == POSSIBLE:
                count += 1
                last = offset + 1
        if count == 0:
            tracer.log_rule("naked_singles", "invalid", cell=cell, reason="no candidates")
            return StepResult.INVALID
        if count == 1:
            assigned[cell] = last
            changed = True
            tracer.log_rule("naked_singles", "assign", cell=cell, value=last)
    return _outcome(changed)


def _eliminate(state: GridState, cells: Sequence[int], value: int) -> bool:
    side = state.shape.side
    assigned = state.assigned
    marks = state.marks
    changed = False
    for cell in cells:
        slot = cell * side + value - 1
        if assigned[cell] == 0 and marks[slot] == POSSIBLE:
            marks[slot] = ELIMINATED
            changed = True
    return changed


def _segments_with_candidate(
    state: GridState, segments: Sequence[Sequence[int]], value: int
) -> List[int]:
    return [
        i
        for i, segment in enumerate(segments)
        if any(state.is_live(cell, value) for cell in segment)
    ]


def _line_segments(line: Sequence[int], width: int) -> List[Sequence[int]]:
    return [line[start : start + width] for start in range(0, len(line), width)]


def locked_candidates_lines(state: GridState, tracer: Optional[Tracer] = None) -> StepResult:
    """
    Pointing from lines into blocks: when every live candidate of a value in a
    row (or column) sits inside one block, no other cell of that block can take
    the value.
    """
    tracer = tracer or get_tracer()
    shape = state.shape
    changed = False
    passes = (
        ("row", shape.rows, shape.block_width),
        ("col", shape.cols, shape.block_height),
    )
    for kind, lines, width in passes:
        for index, line in enumerate(lines):
            segments = _line_segments(line, width)
            for value in range(1, shape.side + 1):
                if any(state.assigned[cell] == value for cell in line):
                    continue
                hits = _segments_with_candidate(state, segments, value)
                if not hits:
                    tracer.log_rule(
                        "locked_candidates_lines", "invalid", reason=f"{value} in {kind} {index + 1}"
                    )
                    return StepResult.INVALID
                if len(hits) > 1:
                    continue
                inside = set(segments[hits[0]])
                block = shape.blocks[shape.block_of(segments[hits[0]][0])]
                rest = [cell for cell in block if cell not in inside]
                if _eliminate(state, rest, value):
                    changed = True
                    tracer.log_rule("locked_candidates_lines", "eliminate", value=value,
                                    reason=f"{kind} {index + 1}")
    return _outcome(changed)


def locked_candidates_blocks(state: GridState, tracer: Optional[Tracer] = None) -> StepResult:
    """
    Claiming from blocks into lines: when every live candidate of a value in a
    block sits on one row (or column), the rest of that line loses the value.
    """
    tracer = tracer or get_tracer()
    shape = state.shape
    h, w, side = shape.block_height, shape.block_width, shape.side
    changed = False
    for block, unit in enumerate(shape.blocks):
        # Block cells are stored row-major, so row i is unit[i*w:(i+1)*w].
        block_rows = [unit[i * w : (i + 1) * w] for i in range(h)]
        block_cols = [unit[j::w] for j in range(w)]
        top, left = shape.block_origin(block)
        for value in range(1, side + 1):
            if any(state.assigned[cell] == value for cell in unit):
                continue
            row_hits = _segments_with_candidate(state, block_rows, value)
            col_hits = _segments_with_candidate(state, block_cols, value)
            if not row_hits or not col_hits:
                tracer.log_rule("locked_candidates_blocks", "invalid", reason=f"{value} in block {block}")
                return StepResult.INVALID
            if len(row_hits) == 1:
                line = shape.rows[top + row_hits[0]]
                rest = [cell for cell in line if not left <= cell % side < left + w]
                if _eliminate(state, rest, value):
                    changed = True
                    tracer.log_rule("locked_candidates_blocks", "eliminate", value=value,
                                    reason=f"block {block} row {top + row_hits[0] + 1}")
            if len(col_hits) == 1:
                line = shape.cols[left + col_hits[0]]
                rest = [cell for cell in line if not top <= cell // side < top + h]
                if _eliminate(state, rest, value):
                    changed = True
                    tracer.log_rule("locked_candidates_blocks", "eliminate", value=value,
                                    reason=f"block {block} col {left + col_hits[0] + 1}")
    return _outcome(changed)


Rule = Callable[..., StepResult]

# Applied in this order every round.
RULES: Tuple[Rule, ...] = (
    unique_in_lines,
    unique_in_blocks,
    naked_singles,
    locked_candidates_lines,
    locked_candidates_blocks,
)
