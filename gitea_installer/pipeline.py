"""Ordered workflow steps with early return on the first failure."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from gitea_installer.errors import InstallerError
from gitea_installer.logging_utils import get_logger

LOGGER = get_logger(__name__)

SKIPPED_PREFIX = "skipped:"


def skipped(reason: str) -> str:
    return f"{SKIPPED_PREFIX} {reason}"


@dataclass(frozen=True)
class Step:
    """A named unit of work; ``action`` returns a short detail string."""

    name: str
    action: Callable[[], str]


@dataclass
class StepResult:
    name: str
    ok: bool
    detail: str = ""
    error: Optional[InstallerError] = None

    @property
    def skipped(self) -> bool:
        return self.ok and self.detail.startswith(SKIPPED_PREFIX)


@dataclass
class PipelineResult:
    results: List[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((result for result in self.results if not result.ok), None)

    @property
    def error(self) -> Optional[InstallerError]:
        failed = self.failed_step
        return failed.error if failed else None

    def step_names(self) -> List[str]:
        return [result.name for result in self.results]


def run_pipeline(steps: Sequence[Step]) -> PipelineResult:
    """Run ``steps`` in order and stop at the first one that fails.

    Only :class:`InstallerError` is turned into a failed result; anything else
    is a bug and propagates.
    """

    outcome = PipelineResult()
    total = len(steps)
    for index, step in enumerate(steps, start=1):
        LOGGER.info("[%d/%d] %s", index, total, step.name)
        try:
            detail = step.action() or ""
        except InstallerError as exc:
            LOGGER.error("Step %r failed: %s", step.name, exc)
            outcome.results.append(StepResult(step.name, False, str(exc), exc))
            return outcome
        if detail.startswith(SKIPPED_PREFIX):
            LOGGER.info("%s %s", step.name, detail)
        outcome.results.append(StepResult(step.name, True, detail))
    return outcome
