from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from deepresearch.research_core.models.interfaces import Finding

STEPS_PER_DEPTH = 5


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


@dataclass
class ResearchSession:
    """Mutable record of one research invocation.

    Owned by a single orchestrator run and discarded after synthesis. The
    only way ``completed_steps`` moves is through ``record_activity``.
    """

    topic: str
    max_depth: int
    time_limit: float
    min_iterations_cap: int = 3
    max_failed_attempts: int = 3
    clock: Callable[[], float] = time.monotonic

    current_depth: int = 0
    failed_attempts: int = 0
    completed_steps: int = 0
    findings: list[Finding] = field(default_factory=list)
    summaries: list[str] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)
    identified_gaps: deque[str] = field(default_factory=deque)
    started_at: float = field(init=False)

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.started_at = self.clock()

    @property
    def minimum_iterations(self) -> int:
        return min(self.min_iterations_cap, self.max_depth)

    @property
    def total_expected_steps(self) -> int:
        return self.max_depth * STEPS_PER_DEPTH

    # -- budget -------------------------------------------------------------

    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def time_remaining(self) -> float:
        return self.time_limit - self.elapsed()

    def budget_exhausted(self) -> bool:
        return self.elapsed() >= self.time_limit

    # -- mutation -----------------------------------------------------------

    def enter_depth(self, depth: int) -> None:
        self.current_depth = min(depth, self.max_depth)

    def record_activity(self, completed: bool) -> tuple[int, int, int]:
        """Count a finished step and return the (depth, completed, total) snapshot."""
        if completed:
            self.completed_steps += 1
        return self.current_depth, self.completed_steps, self.total_expected_steps

    def add_findings(self, findings: list[Finding]) -> None:
        self.findings.extend(findings)

    def add_gaps(self, gaps: list[str]) -> None:
        self.identified_gaps.extend(gaps)

    def next_gap(self) -> str | None:
        if not self.identified_gaps:
            return None
        return self.identified_gaps.popleft()

    def record_failed_attempt(self) -> bool:
        """Returns True once the failure budget is spent."""
        self.failed_attempts += 1
        return self.failed_attempts >= self.max_failed_attempts

    # -- read views ---------------------------------------------------------

    def unique_themes(self, limit: int | None = None) -> list[str]:
        themes = _dedupe(self.themes)
        return themes if limit is None else themes[:limit]

    def unique_gaps(self) -> list[str]:
        return _dedupe(list(self.identified_gaps))
