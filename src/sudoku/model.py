"""Grid state store: shapes, per-cell candidate marks, and raw grid conversions."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, List, Optional, Sequence, Tuple

RawGrid = Tuple[int, ...]


class InvariantViolation(RuntimeError):
    """Raised when the engine observes a state it should never be able to reach."""


class Mark(IntEnum):
    UNINITIALIZED = 0
    ELIMINATED = 1
    POSSIBLE = 2


@dataclass(frozen=True)
class GridShape:
    """
    Dimensions of a grid built from `block_height` x `block_width` blocks.
    The side length is their product; there are `block_width` rows of blocks
    and `block_height` columns of blocks.
    """

    block_height: int = 3
    block_width: int = 3
    rows: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False, compare=False)
    cols: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False, compare=False)
    blocks: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False, compare=False)
    peers: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in ("block_height", "block_width"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

        side = self.side
        rows = tuple(tuple(r * side + c for c in range(side)) for r in range(side))
        cols = tuple(tuple(r * side + c for r in range(side)) for c in range(side))
        blocks = tuple(
            tuple(
                (top + i) * side + left + j
                for i in range(self.block_height)
                for j in range(self.block_width)
            )
            for top, left in (self.block_origin(b) for b in range(side))
        )

        peers: List[Tuple[int, ...]] = []
        for cell in range(self.total_cells):
            r, c = divmod(cell, side)
            related = set(rows[r]) | set(cols[c]) | set(blocks[self.block_of(cell)])
            related.discard(cell)
            peers.append(tuple(sorted(related)))

        # Frozen dataclass: cached tables are set through object.__setattr__.
        object.__setattr__(self, "rows", rows)
        object.__setattr__(self, "cols", cols)
        object.__setattr__(self, "blocks", blocks)
        object.__setattr__(self, "peers", tuple(peers))

    @property
    def side(self) -> int:
        return self.block_height * self.block_width

    @property
    def total_cells(self) -> int:
        return self.side * self.side

    def block_origin(self, block: int) -> Tuple[int, int]:
        """Top-left (row, col) of a block."""
        band, stack = divmod(block, self.block_height)
        return band * self.block_height, stack * self.block_width

    def block_of(self, cell: int) -> int:
        r, c = divmod(cell, self.side)
        return (r // self.block_height) * self.block_height + c // self.block_width

    def is_solution(self, raw: Sequence[int]) -> bool:
        """Check that a raw grid is completely filled and breaks no unit."""
        if len(raw) != self.total_cells:
            return False
        expected = set(range(1, self.side + 1))
        for unit in (*self.rows, *self.cols, *self.blocks):
            if {raw[cell] for cell in unit} != expected:
                return False
        return True


DEFAULT_SHAPE = GridShape(3, 3)


@dataclass
class GridState:
    shape: GridShape
    assigned: List[int]
    marks: List[int]

    @classmethod
    def empty(cls, shape: GridShape = DEFAULT_SHAPE) -> "GridState":
        return cls(
            shape=shape,
            assigned=[0] * shape.total_cells,
            marks=[int(Mark.UNINITIALIZED)] * (shape.total_cells * shape.side),
        )

    @classmethod
    def from_raw(cls, raw: Iterable[int], shape: GridShape = DEFAULT_SHAPE) -> "GridState":
        """
        Build a state whose assignments mirror `raw`. Candidate marks are left
        uninitialized; run `auto_fill(state, init=True)` (or `propagate` with
        init) before reading them.
        Conflicting givens are accepted here and surface later as INVALID.
        """
        values = [int(v) for v in raw]
        if len(values) != shape.total_cells:
            raise ValueError(
                f"Raw grid has {len(values)} cells, expected {shape.total_cells}"
            )
        for index, value in enumerate(values):
            if not 0 <= value <= shape.side:
                raise ValueError(
                    f"Cell {index} holds {value}; values must lie in 0..{shape.side}"
                )
        state = cls.empty(shape)
        state.assigned = values
        return state

    def to_raw(self) -> RawGrid:
        return tuple(self.assigned)

    def copy(self) -> "GridState":
        return GridState(shape=self.shape, assigned=self.assigned[:], marks=self.marks[:])

    def is_complete(self) -> bool:
        """True when every cell is assigned. Says nothing about correctness."""
        return all(self.assigned)

    def filled_count(self) -> int:
        return sum(1 for v in self.assigned if v)

    def mark(self, cell: int, value: int) -> int:
        return self.marks[cell * self.shape.side + value - 1]

    def set_mark(self, cell: int, value: int, mark: Mark) -> None:
        self.marks[cell * self.shape.side + value - 1] = int(mark)

    def is_live(self, cell: int, value: int) -> bool:
        """A cell is a live candidate for `value` if unset and the value is still possible."""
        return (
            self.assigned[cell] == 0
            and self.marks[cell * self.shape.side + value - 1] == Mark.POSSIBLE
        )

    def candidates(self, cell: int) -> List[int]:
        base = cell * self.shape.side
        return [
            v + 1
            for v in range(self.shape.side)
            if self.marks[base + v] == Mark.POSSIBLE
        ]

    def candidate_count(self, cell: int) -> int:
        base = cell * self.shape.side
        return sum(1 for m in self.marks[base : base + self.shape.side] if m == Mark.POSSIBLE)

    def eliminated(self) -> frozenset:
        """Indices of all ELIMINATED marks, used to check monotonic progress."""
        return frozenset(i for i, m in enumerate(self.marks) if m == Mark.ELIMINATED)


def from_raw(raw: Iterable[int], shape: GridShape = DEFAULT_SHAPE) -> GridState:
    return GridState.from_raw(raw, shape)


def to_raw(state: GridState) -> RawGrid:
    return state.to_raw()


def is_complete(state: GridState) -> bool:
    return state.is_complete()


def shape_for(total_cells: int) -> Optional[GridShape]:
    """Guess a square-block shape for a raw grid length (81 -> 3x3, 16 -> 2x2)."""
    block = round(total_cells ** 0.25)
    for candidate in (block - 1, block, block + 1):
        if candidate > 0 and candidate ** 4 == total_cells:
            return GridShape(candidate, candidate)
    return None
