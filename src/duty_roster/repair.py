"""
Repair Stages for Duty Roster Planning

Corrective sweeps over a completed month. Stages run in the fixed order of
REPAIR_PIPELINE: the anchor attendance stage must finish before the
minimum-one-shift stage, otherwise the latter can evict the anchor from a
day it already secured.
"""

import logging
from typing import Optional, Sequence

from .roster_model import DayAssignment, Department, DeptPair
from .run_state import GenerationRun, IssueKind

logger = logging.getLogger(__name__)


def overwrite_single_slot(run: GenerationRun, assignment: DayAssignment,
                          slot_id: int, emp_id: str) -> Optional[str]:
    """Place emp_id on a single slot, releasing whoever held it. Returns the evicted id."""
    evicted = assignment.get(slot_id)
    if isinstance(evicted, DeptPair):
        raise ValueError(f"Shift {slot_id} is a dual-department slot")
    if evicted is not None:
        run.counter.release(evicted, slot_id)
    assignment[slot_id] = emp_id
    run.counter.record(emp_id, slot_id)
    return evicted


class RepairStage:
    """One named corrective sweep"""

    name = "repair"

    def apply(self, run: GenerationRun):
        raise NotImplementedError


class AnchorAttendanceStage(RepairStage):
    """Anchor works every working day and reaches the minimum on the target slot"""

    name = "anchor_attendance"

    def apply(self, run: GenerationRun):
        rule = run.config.anchor
        if rule is None:
            return

        anchor = rule.employee_id
        target = rule.target_slot
        working_days = list(run.schedule.working_days())

        for day, assignment in working_days:
            if anchor in assignment:
                continue
            evicted = overwrite_single_slot(run, assignment, target, anchor)
            logger.debug(f"Day {day}: anchor {anchor} placed on shift {target}, replacing {evicted}")

        for day, assignment in working_days:
            if run.counter.count(anchor, target) >= rule.minimum:
                break
            if assignment.get(target) == anchor:
                continue
            positions = [p for p in assignment.positions_of(anchor) if p[0] != target]
            if positions:
                self._move_to_target(run, day, assignment, positions[0])

        achieved = run.counter.count(anchor, target)
        if achieved < rule.minimum:
            name = run.config.name_of(anchor)
            run.report(
                IssueKind.UNMET_GUARANTEE,
                f"{name} has {achieved} of the required {rule.minimum} shifts on shift {target}",
                slot_id=target,
                employee_id=anchor
            )
            logger.warning(f"Anchor minimum not met for {name}: {achieved}/{rule.minimum} on shift {target}")

    def _move_to_target(self, run: GenerationRun, day: int, assignment: DayAssignment,
                        position) -> bool:
        """Move the anchor from position to the target slot and backfill the vacated place"""
        config = run.config
        anchor = config.anchor.employee_id
        target = config.anchor.target_slot
        slot_id, side = position

        evicted = assignment.get(target)
        busy = set(assignment.employees())
        busy.discard(evicted)
        anchor_dept = config.get_employee(anchor).department
        pool = [
            emp_id for emp_id in run.rosters[anchor_dept]
            if emp_id != anchor and emp_id not in busy and config.is_eligible(emp_id, slot_id)
        ]
        if not pool:
            logger.debug(f"Day {day}: no free colleague to take over shift {slot_id} from anchor")
            return False

        run.counter.release(anchor, slot_id)
        self._set_position(assignment, slot_id, side, None)
        overwrite_single_slot(run, assignment, target, anchor)

        replacement = run.policy.select(pool, slot_id, run.counter)
        self._set_position(assignment, slot_id, side, replacement)
        logger.debug(f"Day {day}: anchor moved from shift {slot_id} to {target}, {replacement} backfilled")
        return True

    @staticmethod
    def _set_position(assignment: DayAssignment, slot_id: int, side: Optional[Department],
                      emp_id: Optional[str]):
        if side is None:
            assignment[slot_id] = emp_id
        else:
            assignment[slot_id].set(side, emp_id)


class MinimumShiftStage(RepairStage):
    """Every employee works at least once.

    The restricted worker is exempt by name, and the anchor is covered by
    AnchorAttendanceStage.
    """

    name = "minimum_one_shift"

    def apply(self, run: GenerationRun):
        config = run.config
        exempt = {config.restricted_id, config.anchor_id}
        pending = [
            emp_id for emp_id in run.combined_roster()
            if emp_id not in exempt and run.counter.total(emp_id) == 0
        ]
        if not pending:
            return

        fill = config.effective_fill_slot
        logger.info(f"{len(pending)} employees without shifts, filling via shift {fill}")

        for day, assignment in run.schedule.working_days():
            if not pending:
                break
            occupant = assignment.get(fill)
            if occupant is not None and (occupant == config.anchor_id or run.counter.total(occupant) <= 1):
                continue
            emp_id = pending.pop(0)
            overwrite_single_slot(run, assignment, fill, emp_id)
            logger.debug(f"Day {day}: {emp_id} placed on shift {fill}, replacing {occupant}")

        for emp_id in pending:
            name = config.name_of(emp_id)
            run.report(
                IssueKind.UNMET_GUARANTEE,
                f"{name} could not be given a shift this month",
                slot_id=fill,
                employee_id=emp_id
            )
            logger.warning(f"No working day left to give {name} a shift")


REPAIR_PIPELINE: Sequence[RepairStage] = (AnchorAttendanceStage(), MinimumShiftStage())


def run_repair_pipeline(run: GenerationRun, stages: Sequence[RepairStage] = REPAIR_PIPELINE):
    for stage in stages:
        logger.info(f"Running repair stage '{stage.name}'")
        stage.apply(run)
