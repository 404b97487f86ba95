"""BeamGroupStep: runs grouping, repair and staff counting over measure stacks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from beamgroup.config import Settings
from beamgroup.consistency_checker import ConsistencyChecker
from beamgroup.errors import StepError, StructuralError
from beamgroup.group_builder import GroupBuilder
from beamgroup.logging_utils import clear_log_context, set_log_context
from beamgroup.measure import Measure, MeasureStack
from beamgroup.timing import compute_time_offsets, count_staves

logger = logging.getLogger(__name__)


@dataclass
class StepReport:
    """
    Outcome of a step run over several measure stacks.

    Attributes:
        processed: Ids of the stacks processed successfully.
        failed:    Failure message per failed stack id.
        splits:    Total number of group splits performed.
    """

    processed: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    splits: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed


class BeamGroupStep:
    """
    Build and repair the beam groups of every measure of a measure stack.

    A stack is processed by a single worker; stacks are independent of each
    other, so a structural failure aborts only the stack where it occurs.

    Args:
        settings: Engine settings; defaults apply when omitted.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.builder = GroupBuilder()
        self.checker = ConsistencyChecker(self.settings)

    def process_measure(self, measure: Measure) -> int:
        """
        Populate the groups of one measure, repair them and count their staves.

        Returns:
            The number of splits performed.
        """
        self.builder.build(measure)
        splits = self.checker.repair(measure)

        # Detect groups that are linked to more than one staff
        for group in measure.groups:
            count_staves(group)
            logger.debug("%s final %s multi_staff=%s", measure, group, group.multi_staff)

        return splits

    def doit(self, stack: MeasureStack) -> int:
        """
        Process all measures of a stack.

        Raises:
            StepError: If a structural failure or a dangling graph reference
                       prevents processing a measure.
        """
        splits = 0
        try:
            for measure in stack.measures:
                set_log_context(stack_id=stack.id, measure_id=measure.id)
                splits += self.process_measure(measure)
        except (StructuralError, KeyError) as exc:
            # A KeyError comes from a dangling node reference in the stack graph
            raise StepError(f"Beam grouping failed in stack {stack.id}: {exc}", stack.id) from exc
        finally:
            clear_log_context()
        return splits

    def run(self, stacks: list[MeasureStack]) -> StepReport:
        """Run the step on every stack, isolating failures per stack."""
        report = StepReport()

        for stack in stacks:
            try:
                report.splits += self.doit(stack)
            except StepError as exc:
                logger.error("step_failed stack=%s error=%s", stack.id, exc)
                report.failed[stack.id] = str(exc)
            else:
                report.processed.append(stack.id)

        logger.info(
            "end_of_step processed=%s failed=%s splits=%s",
            len(report.processed),
            len(report.failed),
            report.splits,
        )
        return report

    def compute_timing(self, stack: MeasureStack) -> int:
        """
        Propagate time offsets in every group whose first chord is timed.

        Returns:
            The number of groups processed.
        """
        count = 0
        try:
            for measure in stack.measures:
                set_log_context(stack_id=stack.id, measure_id=measure.id)
                for group in measure.groups:
                    first = group.first_chord
                    if first is not None and first.time_offset is not None:
                        compute_time_offsets(group)
                        count += 1
        finally:
            clear_log_context()
        return count
