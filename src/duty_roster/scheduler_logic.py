"""
Scheduler Logic for Duty Roster Planning

Greedy month generator: fills every weekday slot by slot through the
selection policy, then runs the repair pipeline.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Any
from dataclasses import dataclass
import calendar
import logging
import random
import time

from .roster_model import (
    CLOSED,
    WEEKEND,
    ConfigurationError,
    DayAssignment,
    Department,
    DeptPair,
    MonthSchedule,
    RosterConfig,
)
from .repair import REPAIR_PIPELINE, run_repair_pipeline
from .run_state import GenerationRun, IssueKind, SchedulingIssue
from .selection import PlacementFailure, SelectionPolicy
from .shift_counter import ShiftCounter

logger = logging.getLogger(__name__)


@dataclass
class ScheduleResult:
    """Result of schedule generation"""
    success: bool
    schedule: MonthSchedule
    counter: ShiftCounter
    issues: List[SchedulingIssue]
    violations: List[str]
    statistics: Dict[str, Dict[str, Any]]
    message: str
    seed: Optional[int] = None

    def issues_of(self, kind: IssueKind) -> List[SchedulingIssue]:
        return [issue for issue in self.issues if issue.kind == kind]

    @property
    def placement_failures(self) -> List[SchedulingIssue]:
        return self.issues_of(IssueKind.PLACEMENT_FAILURE)

    @property
    def unmet_guarantees(self) -> List[SchedulingIssue]:
        return self.issues_of(IssueKind.UNMET_GUARANTEE)


class DayAssigner:
    """Fills all slots of one working day"""

    def __init__(self, config: RosterConfig, policy: SelectionPolicy):
        self.config = config
        self.policy = policy

    def assign_day(self, day: int, run: GenerationRun) -> DayAssignment:
        assignment = DayAssignment()
        assigned_today = set()

        # Dual-department slots first so both departments are represented
        for slot in self.config.dual_slots():
            pair = DeptPair()
            for dept in Department:
                pool = self._pool(run.rosters[dept], slot.id, assigned_today)
                if not pool:
                    pool = self._pool(run.rosters[dept], slot.id, set())
                    if pool:
                        run.report(
                            IssueKind.COVERAGE_FALLBACK,
                            f"Everyone in {dept.value} already works on day {day}; shift {slot.id} doubled up",
                            day=day, slot_id=slot.id
                        )
                        logger.warning(f"Day {day}: {dept.value} exhausted, reusing staff for shift {slot.id}")
                chosen = self._place(day, slot.id, pool, run)
                pair.set(dept, chosen)
                if chosen is not None:
                    assigned_today.add(chosen)
            assignment[slot.id] = pair

        for slot in self.config.single_slots():
            combined = run.combined_roster()
            pool = self._pool(combined, slot.id, assigned_today)
            if not pool:
                pool = self._pool(combined, slot.id, set())
                if pool:
                    run.report(
                        IssueKind.COVERAGE_FALLBACK,
                        f"Everyone already works on day {day}; shift {slot.id} doubled up",
                        day=day, slot_id=slot.id
                    )
                    logger.warning(f"Day {day}: roster exhausted, reusing staff for shift {slot.id}")
            chosen = self._place(day, slot.id, pool, run)
            assignment[slot.id] = chosen
            if chosen is not None:
                assigned_today.add(chosen)

        return assignment

    def _pool(self, roster: List[str], slot_id: int, exclude: set) -> List[str]:
        return [
            emp_id for emp_id in roster
            if emp_id not in exclude and self.config.is_eligible(emp_id, slot_id)
        ]

    def _place(self, day: int, slot_id: int, pool: List[str], run: GenerationRun) -> Optional[str]:
        try:
            return self.policy.select(pool, slot_id, run.counter)
        except PlacementFailure as e:
            run.report(IssueKind.PLACEMENT_FAILURE, f"Day {day}: {e}", day=day, slot_id=slot_id)
            logger.error(f"Day {day}: {e}")
            return None


class ShiftScheduler:
    """Generates month schedules for one roster configuration.

    The instance only keeps the validated configuration; every call to
    generate_schedule builds its own counter, roster copies and random
    source, so concurrent calls do not share mutable state.
    """

    def __init__(self, config: RosterConfig):
        config.validate()
        self.config = config
        self.policy = SelectionPolicy(config)
        self.day_assigner = DayAssigner(config, self.policy)

    def generate_schedule(self, year: int, month: int, seed: Optional[int] = None,
                          closed_days: Iterable[int] = ()) -> ScheduleResult:
        """
        Generate the roster for one month

        Args:
            year: Target year
            month: Target month (1-12)
            seed: Shuffles department order for a different solution; None keeps input order
            closed_days: Days of month treated as non-working besides weekends
        """
        start_time = time.time()
        closed = self._validate_target(year, month, closed_days)
        month_key = f"{year}-{month:02d}"
        logger.info(f"Starting schedule generation for {month_key} (seed={seed})")

        run = self._new_run(year, month, seed)

        for day in range(1, calendar.monthrange(year, month)[1] + 1):
            if date(year, month, day).weekday() >= 5:
                run.schedule[day] = WEEKEND
            elif day in closed:
                run.schedule[day] = CLOSED
            else:
                run.schedule[day] = self.day_assigner.assign_day(day, run)

        run_repair_pipeline(run, REPAIR_PIPELINE)

        violations = validate_schedule(self.config, run.schedule, run.counter)
        success = not any(issue.kind == IssueKind.PLACEMENT_FAILURE for issue in run.issues)
        message = self._build_message(run, success)

        duration = time.time() - start_time
        logger.info(f"Generation for {month_key} completed in {duration:.2f}s. Success: {success}")

        return ScheduleResult(
            success=success,
            schedule=run.schedule,
            counter=run.counter,
            issues=run.issues,
            violations=violations,
            statistics=get_schedule_statistics(self.config, run.counter),
            message=message,
            seed=seed
        )

    def _validate_target(self, year: int, month: int, closed_days: Iterable[int]) -> set:
        if not isinstance(month, int) or not 1 <= month <= 12:
            raise ConfigurationError(f"Month must be between 1 and 12, got {month!r}")
        if not isinstance(year, int) or year < 1:
            raise ConfigurationError(f"Year must be positive, got {year!r}")
        days_in_month = calendar.monthrange(year, month)[1]
        closed = set(closed_days)
        outside = sorted(d for d in closed if not 1 <= d <= days_in_month)
        if outside:
            raise ConfigurationError(f"Closed days {outside} are outside {year}-{month:02d}")
        return closed

    def _new_run(self, year: int, month: int, seed: Optional[int]) -> GenerationRun:
        rosters = {
            dept: [emp.id for emp in self.config.departments[dept]]
            for dept in Department
        }
        if seed is not None:
            rng = random.Random(seed)
            for dept in Department:
                rng.shuffle(rosters[dept])

        return GenerationRun(
            config=self.config,
            policy=self.policy,
            counter=ShiftCounter(self.config.employee_ids(), self.config.shift_ids()),
            rosters=rosters,
            schedule=MonthSchedule(year, month)
        )

    def _build_message(self, run: GenerationRun, success: bool) -> str:
        failures = sum(1 for i in run.issues if i.kind == IssueKind.PLACEMENT_FAILURE)
        unmet = sum(1 for i in run.issues if i.kind == IssueKind.UNMET_GUARANTEE)
        working = run.schedule.count_working_days()
        if success:
            message = f"Schedule generated for {working} working days"
        else:
            message = f"Schedule incomplete: {failures} shifts could not be filled"
        if unmet:
            message += f" with {unmet} unmet guarantees"
        return message


def validate_schedule(config: RosterConfig, schedule: MonthSchedule,
                      counter: ShiftCounter) -> List[str]:
    """Check a finished schedule against the roster invariants"""
    violations = []

    for day, assignment in schedule.working_days():
        placed = assignment.employees()
        doubled = sorted({e for e in placed if placed.count(e) > 1})
        for emp_id in doubled:
            violations.append(f"{config.name_of(emp_id)} holds more than one shift on day {day}")

        for slot in config.shifts:
            value = assignment.get(slot.id)
            occupants = value.members() if isinstance(value, DeptPair) else ([value] if value else [])
            if isinstance(value, DeptPair):
                for dept in Department:
                    emp_id = value.get(dept)
                    emp = config.get_employee(emp_id) if emp_id else None
                    if emp_id is None:
                        violations.append(f"No {dept.value} employee on shift {slot.id} on day {day}")
                    elif emp is not None and emp.department != dept:
                        violations.append(f"{config.name_of(emp_id)} is on the wrong side of shift {slot.id} on day {day}")
            elif value is None:
                violations.append(f"No employee assigned to shift {slot.id} on day {day}")
            for emp_id in occupants:
                if not config.is_eligible(emp_id, slot.id):
                    violations.append(f"{config.name_of(emp_id)} may not work shift {slot.id} (day {day})")

    for emp_id in counter.employee_ids():
        appearances = sum(
            assignment.employees().count(emp_id) for _, assignment in schedule.working_days()
        )
        if appearances != counter.total(emp_id):
            violations.append(
                f"Counter for {config.name_of(emp_id)} says {counter.total(emp_id)} shifts, schedule has {appearances}"
            )

    return violations


def get_schedule_statistics(config: RosterConfig, counter: ShiftCounter) -> Dict[str, Dict[str, Any]]:
    """Per-employee summary keyed by employee id"""
    stats = {}
    for emp in config.employees():
        if emp.id not in counter:
            continue
        stats[emp.id] = {
            "name": emp.name,
            "department": emp.department.value,
            "total_shifts": counter.total(emp.id),
            "shifts": {slot_id: counter.count(emp.id, slot_id) for slot_id in counter.slot_ids},
            "is_restricted": emp.id == config.restricted_id,
            "is_anchor": emp.id == config.anchor_id
        }
    return stats
