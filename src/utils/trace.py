"""Tracing module: records propagation and search steps and writes them to CSV."""

import csv
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class TraceStep:
    """A single step in the solving process."""

    timestamp: float
    step_number: int
    action_type: str  # 'rule', 'round', 'guess', 'backtrack', 'solution_found', 'generated'
    rule: Optional[str] = None
    outcome: Optional[str] = None  # 'assign', 'eliminate', 'invalid', 'progress', ...
    cell: Optional[int] = None
    value: Optional[int] = None
    depth: Optional[int] = None
    candidates: Optional[int] = None
    reason: Optional[str] = None


class Tracer:
    """Records solver steps for debugging and analysis. Never affects results."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.steps: List[TraceStep] = []
        self.start_time = datetime.now().timestamp()
        self.step_counter = 0

    def _get_timestamp(self) -> float:
        """Get elapsed time in seconds since tracer creation."""
        return datetime.now().timestamp() - self.start_time

    def _record(self, action_type: str, **fields: Any) -> None:
        self.step_counter += 1
        self.steps.append(TraceStep(
            timestamp=self._get_timestamp(),
            step_number=self.step_counter,
            action_type=action_type,
            **fields,
        ))

    def log_rule(
        self,
        rule: str,
        outcome: str,
        cell: Optional[int] = None,
        value: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        """Log a single deduction (or contradiction) made by a propagation rule."""
        if not self.enabled:
            return
        self._record('rule', rule=rule, outcome=outcome, cell=cell, value=value, reason=reason)

    def log_round(self, round_number: int, outcome: str):
        """Log the combined result of one propagation round."""
        if not self.enabled:
            return
        self._record('round', outcome=outcome, reason=f"round {round_number}")

    def log_guess(self, cell: int, value: int, depth: int, candidates: int):
        """Log a speculative assignment on a branch cell."""
        if not self.enabled:
            return
        self._record('guess', cell=cell, value=value, depth=depth, candidates=candidates)

    def log_backtrack(self, cell: int, depth: int, reason: str = "No valid values"):
        """Log a backtrack event."""
        if not self.enabled:
            return
        self._record('backtrack', cell=cell, depth=depth, reason=reason)

    def log_solution_found(self, depth: int):
        """Log when a completed grid is reached."""
        if not self.enabled:
            return
        self._record('solution_found', depth=depth)

    def log_puzzle_generated(self, descriptor: str, depth: int, filled: int):
        """Log a puzzle kept by the generator."""
        if not self.enabled:
            return
        self._record('generated', depth=depth, value=filled, reason=descriptor)

    def to_csv(self, filepath: Path) -> None:
        """Write trace to CSV file."""
        if not self.steps:
            print("No trace steps to write")
            return

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        fieldnames = [
            'timestamp', 'step_number', 'action_type', 'rule', 'outcome',
            'cell', 'value', 'depth', 'candidates', 'reason'
        ]

        with open(filepath, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for step in self.steps:
                writer.writerow(asdict(step))

        print(f"Trace written to {filepath} ({len(self.steps)} steps)")

    def summary(self) -> Dict[str, Any]:
        """Get a summary of the trace."""
        action_counts: Dict[str, int] = {}
        for step in self.steps:
            action_counts[step.action_type] = action_counts.get(step.action_type, 0) + 1

        return {
            'total_steps': len(self.steps),
            'elapsed_time_seconds': self._get_timestamp(),
            'action_counts': action_counts,
            'num_deductions': sum(
                1 for s in self.steps if s.action_type == 'rule' and s.outcome != 'invalid'
            ),
            'num_guesses': action_counts.get('guess', 0),
            'num_backtracks': action_counts.get('backtrack', 0),
        }


# Global tracer instance. Starts disabled so the solver records nothing unless asked.
_global_tracer: Optional[Tracer] = None


def get_tracer() -> Tracer:
    """Get or create the global tracer."""
    global _global_tracer
    if _global_tracer is None:
        _global_tracer = Tracer(enabled=False)
    return _global_tracer


def reset_tracer() -> None:
    """Reset the global tracer."""
    global _global_tracer
    _global_tracer = None


def enable_tracing(enabled: bool = True) -> None:
    """Enable or disable tracing."""
    get_tracer().enabled = enabled
