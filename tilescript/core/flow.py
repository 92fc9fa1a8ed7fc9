"""
Control-flow verifier for compiled step programs.

The engine only supports forward jumps to anchors and halting markers.
There is no block scoping, so a branch body that is not terminated runs
straight into its sibling. This pass checks a sequence before it is
persisted:

  1. Step ids are unique
  2. Anchor tags are unique
  3. Every jump target names an anchor later in the sequence
  4. The fallthrough path of every conditional check is terminated
     (a stop or halting anchor) before its fail target, unless the
     target anchor itself halts
"""

import logging
from dataclasses import dataclass, field

from .steps import JUMP_KINDS, Step, StepKind

logger = logging.getLogger(__name__)


class FlowError(ValueError):
    """A compiled program failed control-flow verification."""

    def __init__(self, report: "FlowReport"):
        self.report = report
        super().__init__("; ".join(report.errors))


@dataclass
class FlowReport:
    """Verification results for one sequence."""
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)
        self.valid = False

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def verify_program(steps: list[Step]) -> FlowReport:
    """Check ids, anchors, jump targets and branch termination."""
    report = FlowReport()

    seen_ids = set()
    anchors: dict[str, int] = {}
    for index, step in enumerate(steps):
        if step.id in seen_ids:
            report.add_error(f"Duplicate step id {step.id} at position {index}")
        seen_ids.add(step.id)

        if step.kind == StepKind.ANCHOR:
            tag = step.data.get("tag", "")
            if tag in anchors:
                report.add_error(f"Duplicate anchor '{tag}' at positions {anchors[tag]} and {index}")
            else:
                anchors[tag] = index

    for index, step in enumerate(steps):
        if step.kind not in JUMP_KINDS:
            continue
        for target in step.jump_targets:
            target_index = anchors.get(target)
            if target_index is None:
                report.add_error(f"{step.kind.value} at {index} jumps to missing anchor '{target}'")
                continue
            if target_index <= index:
                report.add_error(
                    f"{step.kind.value} at {index} jumps backwards to '{target}' at {target_index}"
                )
                continue
            if step.kind != StepKind.FILTER_REQUEST:
                _check_termination(steps, index, target_index, target, report)

    referenced = {t for s in steps if s.kind in JUMP_KINDS for t in s.jump_targets}
    for tag, index in anchors.items():
        if tag not in referenced and steps[index].halts and index + 1 < len(steps):
            report.add_warning(
                f"Halting anchor '{tag}' at {index} is never jumped to; steps after it are unreachable"
            )

    if not report.valid:
        logger.debug("Flow verification failed: %s", report.errors)
    return report


def _check_termination(
    steps: list[Step],
    check_index: int,
    target_index: int,
    target: str,
    report: FlowReport,
) -> None:
    """The pass branch after a check must end before the fail target's body."""
    if steps[target_index].halts:
        return
    for step in steps[check_index + 1:target_index]:
        if step.halts:
            return
    report.add_error(
        f"Check at {check_index} falls through into anchor '{target}' at {target_index}"
    )


def ensure_valid(steps: list[Step]) -> FlowReport:
    """Verify and raise FlowError on any error."""
    report = verify_program(steps)
    if not report.valid:
        raise FlowError(report)
    return report
