"""Puzzle generator: solve empty grids at random, then strip givens while the answer stays unique."""

import random
from dataclasses import dataclass, fields
from typing import Any, List, Mapping, Optional

from .collection import CollectionStore, PuzzleCollection, PuzzleRecord, build_descriptor
from .model import GridShape, GridState, InvariantViolation, RawGrid
from .propagation import PropagationResult, prepare, propagate
from .search import SearchMode, SolveStatus, search
from src.utils.trace import Tracer, get_tracer


@dataclass
class GeneratorConfig:
    seed_filled: int = 40  # givens left after the first batch removal
    max_per_descriptor: int = 10
    flush_every: int = 10  # solutions between collection flushes
    min_depth: int = 1  # shallowest guess depth worth keeping

    def __post_init__(self) -> None:
        if self.seed_filled < 0:
            raise ValueError("seed_filled must not be negative")
        if self.max_per_descriptor <= 0 or self.flush_every <= 0:
            raise ValueError("max_per_descriptor and flush_every must be positive")
        if self.min_depth < 1:
            raise ValueError("min_depth must be at least 1")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "GeneratorConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise ValueError(f"Unknown generator settings: {', '.join(sorted(unknown))}")
        return cls(**{k: int(v) for k, v in mapping.items()})


class PuzzleGenerator:
    def __init__(
        self,
        shape: GridShape,
        rng: random.Random,
        collection: Optional[PuzzleCollection] = None,
        config: Optional[GeneratorConfig] = None,
        store: Optional[CollectionStore] = None,
        tracer: Optional[Tracer] = None,
    ):
        self.shape = shape
        self.rng = rng
        self.config = config or GeneratorConfig()
        if collection is None:
            collection = PuzzleCollection(self.config.max_per_descriptor)
        self.collection = collection
        self.store = store
        self.tracer = tracer or get_tracer()
        self.solutions_made = 0

    def make_solution(self) -> RawGrid:
        """
        A random fully solved grid. Uses FIND_ANY with the shuffled value order
        rather than a uniqueness search, since an empty grid is never unique.
        """
        state = GridState.empty(self.shape)
        if propagate(state, init=True, tracer=self.tracer) is PropagationResult.INVALID:
            raise InvariantViolation("an empty grid cannot be contradictory")
        result = search(state, SearchMode.FIND_ANY, rng=self.rng, tracer=self.tracer)
        if result.grid is None or not result.grid.is_complete():
            raise InvariantViolation(f"empty {self.shape.side}x{self.shape.side} grid has no solution")
        return result.grid.to_raw()

    def harden(self, solution: RawGrid) -> List[PuzzleRecord]:
        """
        Remove givens along one random order. After the batch removal down to
        `seed_filled`, keep removing one cell at a time and record every puzzle
        that still has a unique solution but needs guessing; stop at the first
        puzzle that is no longer unique.
        """
        puzzle = list(solution)
        order = self.rng.sample(range(self.shape.total_cells), self.shape.total_cells)
        batch = max(0, self.shape.total_cells - self.config.seed_filled)
        for cell in order[:batch]:
            puzzle[cell] = 0

        kept: List[PuzzleRecord] = []
        for cell in order[batch:]:
            puzzle[cell] = 0
            result = search(prepare(puzzle, self.shape), SearchMode.MIN_DEPTH, tracer=self.tracer)
            if result.status is not SolveStatus.UNIQUE:
                break
            if result.depth < self.config.min_depth:
                continue
            record = PuzzleRecord(
                puzzle=tuple(puzzle),
                solution=tuple(solution),
                descriptor=build_descriptor(result.depth, puzzle, self.shape),
            )
            if self.collection.add(record):
                kept.append(record)
                self.tracer.log_puzzle_generated(record.descriptor, result.depth, len(puzzle) - puzzle.count(0))
        return kept

    def step(self) -> List[PuzzleRecord]:
        records = self.harden(self.make_solution())
        self.solutions_made += 1
        if self.store is not None and self.solutions_made % self.config.flush_every == 0:
            self.flush()
        return records

    def run(self, rounds: int) -> List[PuzzleRecord]:
        produced: List[PuzzleRecord] = []
        for _ in range(rounds):
            produced.extend(self.step())
        self.flush()
        return produced

    def flush(self) -> None:
        if self.store is not None:
            self.store.save_collection(self.collection.as_dict())
