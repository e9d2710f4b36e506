"""CLI entrypoint: solve grids from files, or generate graded puzzle collections."""

import argparse
import csv
import os
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from tqdm import tqdm

from solver import MODES, solve_grid
from src.sudoku.collection import PuzzleCollection, TableCollectionStore, save_by_level
from src.sudoku.generator import GeneratorConfig, PuzzleGenerator
from src.sudoku.loader import load_grids
from src.sudoku.model import GridShape, shape_for
from src.utils.io import load_json, save_json
from src.utils.trace import enable_tracing, get_tracer, reset_tracer

DEFAULT_DATA_PATH = "data/puzzles.csv"
SHAPE_KEYS = ("block_height", "block_width")


def _add_shape_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--block-height", type=int, default=None, help="Rows per block (default 3)")
    parser.add_argument("--block-width", type=int, default=None, help="Columns per block (default 3)")


def parse_args(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(description="Solve and generate block Latin-square puzzles")
    commands = parser.add_subparsers(dest="command", required=True)

    solve_cmd = commands.add_parser("solve", help="Classify and solve grids read from a file or directory")
    solve_cmd.add_argument("input", type=Path, help="Grid file (.txt/.json/.jsonl/.csv/.parquet) or directory")
    _add_shape_args(solve_cmd)
    solve_cmd.add_argument("--mode", choices=sorted(MODES), default="unique", help="Search mode")
    solve_cmd.add_argument("--output", type=Path, default=None, help="Optional CSV path for results")
    solve_cmd.add_argument("--trace", type=Path, default=None, help="Write a step trace CSV here")
    solve_cmd.add_argument("--quiet", action="store_true", help="Do not print boards")

    gen_cmd = commands.add_parser("generate", help="Generate puzzles that need guessing")
    _add_shape_args(gen_cmd)
    gen_cmd.add_argument(
        "--output",
        type=Path,
        default=Path(os.environ.get("SUDOKU_DATA_PATH", DEFAULT_DATA_PATH)),
        help="Collection file (.csv/.jsonl/.parquet); defaults to $SUDOKU_DATA_PATH",
    )
    gen_cmd.add_argument("--rounds", type=int, default=10, help="Number of solved grids to harden")
    gen_cmd.add_argument("--seed", type=int, default=42, help="Seed for the random source")
    gen_cmd.add_argument("--config", type=Path, default=None, help="JSON file with shape/generator settings")
    gen_cmd.add_argument("--split-dir", type=Path, default=None, help="Also write one file per level here")
    gen_cmd.add_argument("--dump-config", type=Path, default=None, help="Write the effective settings as JSON")
    return parser.parse_args(argv)


def resolve_shape(args, settings: Optional[Dict[str, Any]] = None, cells: Optional[int] = None) -> GridShape:
    settings = settings or {}
    height = args.block_height if args.block_height is not None else settings.get("block_height")
    width = args.block_width if args.block_width is not None else settings.get("block_width")
    if height is None and width is None and cells is not None:
        inferred = shape_for(cells)
        if inferred is not None:
            return inferred
    return GridShape(int(height or 3), int(width or 3))


def format_grid(raw: Sequence[int], shape: GridShape) -> str:
    """Text board with a border around every block; blanks print as '.'."""
    side, h, w = shape.side, shape.block_height, shape.block_width
    width = len(str(side))

    def _cell(v: int) -> str:
        return (str(v) if v else ".").rjust(width)

    border = "+" + "+".join("-" * ((width + 1) * w + 1) for _ in range(h)) + "+"
    lines = [border]
    for r in range(side):
        row = raw[r * side : (r + 1) * side]
        parts = [" ".join(_cell(v) for v in row[s * w : (s + 1) * w]) for s in range(h)]
        lines.append("| " + " | ".join(parts) + " |")
        if (r + 1) % h == 0:
            lines.append(border)
    return "\n".join(lines)


def write_results_csv(results: List[Dict[str, Any]], output_path: Path):
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "status", "solutions", "depth", "solution"])
        for r in results:
            writer.writerow([
                r["id"],
                r["status"],
                r["solutions"],
                "" if r["depth"] is None else r["depth"],
                " ".join(str(v) for v in r["solution"]) if r["solution"] else "",
            ])


def _load_inputs(path: Path) -> List[Dict[str, Any]]:
    if path.is_file():
        return load_grids(str(path))
    if path.is_dir():
        records = []
        for file_path in sorted(path.iterdir()):
            if file_path.suffix in [".txt", ".json", ".jsonl", ".csv", ".parquet"]:
                records.extend(load_grids(str(file_path)))
        return records
    raise ValueError(f"Input path {path} is neither file nor directory")


def run_solve(args) -> List[Dict[str, Any]]:
    if args.trace:
        reset_tracer()
        enable_tracing(True)

    results = []
    for record in _load_inputs(args.input):
        puzzle_id = record.get("id", "unknown")
        try:
            shape = resolve_shape(args, cells=len(record["grid"]))
            result = solve_grid(record["grid"], shape=shape, mode=args.mode)
            solution = result.grid.to_raw() if result.grid is not None else None
            results.append({
                "id": puzzle_id,
                "status": result.status.value,
                "solutions": result.solutions,
                "depth": result.depth,
                "solution": solution,
            })
            print(f"{puzzle_id}: {result.status.value} "
                  f"(solutions={result.solutions}, depth={result.depth}, nodes={result.nodes})")
            if solution and not args.quiet:
                print(format_grid(solution, shape))
        except (ValueError, TypeError) as e:
            print(f"ERROR: Failed to solve puzzle {puzzle_id}: {e}")
            results.append({
                "id": puzzle_id,
                "status": "error",
                "solutions": 0,
                "depth": None,
                "solution": None,
            })

    if args.output:
        write_results_csv(results, args.output)
    if args.trace:
        tracer = get_tracer()
        tracer.to_csv(args.trace)
        print(tracer.summary())
    return results


def run_generate(args) -> PuzzleCollection:
    settings: Dict[str, Any] = dict(load_json(args.config)) if args.config else {}
    shape = resolve_shape(args, settings)
    config = GeneratorConfig.from_mapping({k: v for k, v in settings.items() if k not in SHAPE_KEYS})
    if args.dump_config:
        save_json(args.dump_config, {
            "block_height": shape.block_height,
            "block_width": shape.block_width,
            "seed_filled": config.seed_filled,
            "max_per_descriptor": config.max_per_descriptor,
            "flush_every": config.flush_every,
            "min_depth": config.min_depth,
        })

    store = TableCollectionStore(args.output)
    collection = PuzzleCollection.from_mapping(store.load_collection(), config.max_per_descriptor)
    generator = PuzzleGenerator(shape, random.Random(args.seed), collection, config, store)

    before = len(collection)
    for _ in tqdm(range(args.rounds), desc="solutions", unit="grid"):
        generator.step()
    generator.flush()
    print(f"Kept {len(collection) - before} new puzzles; {len(collection)} stored in {args.output}")

    if args.split_dir:
        for path in save_by_level(collection, args.split_dir, shape):
            print(f"Wrote {path}")
    return collection


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    if args.command == "solve":
        return run_solve(args)
    return run_generate(args)


if __name__ == "__main__":
    main()
