"""Generated puzzle records, difficulty descriptors, and their on-disk store."""

import os
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Protocol, Sequence, Tuple

import pandas as pd

from .model import GridShape, RawGrid

Collection = Dict[str, List["PuzzleRecord"]]


@dataclass(frozen=True)
class PuzzleRecord:
    puzzle: RawGrid
    solution: RawGrid
    descriptor: str


def field_width(shape: GridShape) -> int:
    return len(str(shape.total_cells))


def value_histogram(puzzle: Sequence[int], shape: GridShape) -> List[int]:
    """How often each value appears among the givens, largest count first."""
    counts = Counter(v for v in puzzle if v)
    return sorted((counts.get(v, 0) for v in range(1, shape.side + 1)), reverse=True)


def build_descriptor(level: int, puzzle: Sequence[int], shape: GridShape) -> str:
    """
    Concatenate fixed-width decimal fields: difficulty level, number of givens,
    then the descending value-frequency histogram. For a 9x9 grid every field
    is two digits wide, e.g. ``"02" "24" "04040303..."``.
    """
    width = field_width(shape)
    filled = sum(1 for v in puzzle if v)
    fields = [level, filled, *value_histogram(puzzle, shape)]
    if any(f < 0 or len(str(f)) > width for f in fields):
        raise ValueError(f"Descriptor field out of range for width {width}: {fields}")
    return "".join(f"{f:0{width}d}" for f in fields)


def parse_descriptor(descriptor: str, shape: GridShape) -> Tuple[int, int, List[int]]:
    width = field_width(shape)
    expected = width * (shape.side + 2)
    if len(descriptor) != expected or not descriptor.isdigit():
        raise ValueError(
            f"Descriptor {descriptor!r} does not match a {shape.side}x{shape.side} grid"
        )
    fields = [int(descriptor[i : i + width]) for i in range(0, expected, width)]
    return fields[0], fields[1], fields[2:]


class PuzzleCollection:
    """Records grouped by descriptor, at most `max_per_key` per descriptor."""

    def __init__(self, max_per_key: int = 10):
        if max_per_key <= 0:
            raise ValueError("max_per_key must be positive")
        self.max_per_key = max_per_key
        self.records: Collection = {}

    def add(self, record: PuzzleRecord) -> bool:
        bucket = self.records.setdefault(record.descriptor, [])
        if len(bucket) >= self.max_per_key:
            return False
        if any(existing.puzzle == record.puzzle for existing in bucket):
            return False
        bucket.append(record)
        return True

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.records.values())

    def __contains__(self, descriptor: str) -> bool:
        return bool(self.records.get(descriptor))

    def as_dict(self) -> Collection:
        return {key: list(bucket) for key, bucket in self.records.items() if bucket}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[PuzzleRecord]], max_per_key: int = 10) -> "PuzzleCollection":
        collection = cls(max_per_key)
        for records in mapping.values():
            for record in records:
                collection.add(record)
        return collection

    def by_level(self, shape: GridShape) -> Dict[int, "PuzzleCollection"]:
        """Split into one collection per difficulty level."""
        levels: Dict[int, PuzzleCollection] = {}
        for descriptor, bucket in self.records.items():
            level, _, _ = parse_descriptor(descriptor, shape)
            target = levels.setdefault(level, PuzzleCollection(self.max_per_key))
            for record in bucket:
                target.add(record)
        return levels


class CollectionStore(Protocol):
    def load_collection(self) -> Collection: ...

    def save_collection(self, collection: Mapping[str, List[PuzzleRecord]]) -> None: ...


def _grid_to_text(grid: Sequence[int]) -> str:
    return " ".join(str(v) for v in grid)


def _grid_from_text(text: str) -> RawGrid:
    return tuple(int(v) for v in str(text).split())


COLUMNS = ["descriptor", "puzzle", "solution"]


class TableCollectionStore:
    """
    Stores a collection as a table with one row per record. The format follows
    the file suffix: .csv, .jsonl or .parquet (parquet needs pyarrow).
    """

    def __init__(self, path: os.PathLike):
        self.path = Path(path)
        if self.path.suffix not in (".csv", ".jsonl", ".parquet"):
            raise ValueError(f"Unsupported collection format: {self.path.suffix or '<none>'}")

    def _read(self) -> pd.DataFrame:
        if self.path.suffix == ".parquet":
            return pd.read_parquet(self.path)
        if self.path.suffix == ".jsonl":
            return pd.read_json(self.path, lines=True, dtype=False)
        return pd.read_csv(self.path, dtype=str, keep_default_na=False)

    def load_collection(self) -> Collection:
        if not self.path.exists():
            return {}
        df = self._read()
        missing = [c for c in COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{self.path} lacks columns: {', '.join(missing)}")

        collection: Collection = {}
        for row in df.to_dict(orient="records"):
            descriptor = str(row["descriptor"])
            record = PuzzleRecord(
                puzzle=_grid_from_text(row["puzzle"]),
                solution=_grid_from_text(row["solution"]),
                descriptor=descriptor,
            )
            collection.setdefault(descriptor, []).append(record)
        return collection

    def save_collection(self, collection: Mapping[str, List[PuzzleRecord]]) -> None:
        rows = [
            {
                "descriptor": record.descriptor,
                "puzzle": _grid_to_text(record.puzzle),
                "solution": _grid_to_text(record.solution),
            }
            for descriptor in sorted(collection)
            for record in collection[descriptor]
        ]
        df = pd.DataFrame(rows, columns=COLUMNS)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.suffix == ".parquet":
            df.to_parquet(self.path, index=False)
        elif self.path.suffix == ".jsonl":
            df.to_json(self.path, orient="records", lines=True)
        else:
            df.to_csv(self.path, index=False)


def save_by_level(collection: PuzzleCollection, directory: os.PathLike, shape: GridShape,
                  suffix: str = ".csv") -> List[Path]:
    """Write one file per difficulty level (``level_01.csv`` ...) and return the paths."""
    written: List[Path] = []
    width = field_width(shape)
    for level, part in sorted(collection.by_level(shape).items()):
        path = Path(directory) / f"level_{level:0{width}d}{suffix}"
        TableCollectionStore(path).save_collection(part.as_dict())
        written.append(path)
    return written
