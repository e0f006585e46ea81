import pytest
import sys
from pathlib import Path
from datetime import date

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from duty_roster.roster_model import (
    AnchorRule,
    ConfigurationError,
    Department,
    DeptPair,
    Employee,
    RestrictionRule,
    RosterConfig,
    default_roster_config,
    default_shift_catalog,
)
from duty_roster.run_state import IssueKind
from duty_roster.scheduler_logic import ShiftScheduler, validate_schedule


def build_config(size_a: int, size_b: int) -> RosterConfig:
    """Roster with a1 restricted and a2 as anchor, like the default one"""
    departments = {
        Department.A: [Employee(f"a{i}", f"A-{i}", Department.A) for i in range(1, size_a + 1)],
        Department.B: [Employee(f"b{i}", f"B-{i}", Department.B) for i in range(1, size_b + 1)],
    }
    return RosterConfig(
        departments=departments,
        shifts=default_shift_catalog(),
        restriction=RestrictionRule("a1", frozenset({2, 3, 4, 5}), {5: 3}),
        anchor=AnchorRule("a2", target_slot=5, minimum=2),
    )


def weekdays_except(year: int, month: int, keep: set) -> list:
    """All weekdays of the month that are not in keep, for use as closed days"""
    days = []
    day = 1
    while True:
        try:
            d = date(year, month, day)
        except ValueError:
            return days
        if d.weekday() < 5 and day not in keep:
            days.append(day)
        day += 1


@pytest.fixture
def config():
    return default_roster_config()


@pytest.fixture
def scheduler(config):
    return ShiftScheduler(config)


@pytest.fixture
def february(scheduler):
    """February 2023 starts on a Wednesday and has exactly 20 weekdays"""
    return scheduler.generate_schedule(2023, 2)


def test_every_weekday_is_fully_staffed(february, config):
    """
    Why this is important: The reception must be covered on every working
    day. An empty slot on a weekday means nobody opens the desk.
    """
    schedule = february.schedule
    assert february.success
    assert schedule.count_working_days() == 20
    assert len(schedule) == 28

    for day, assignment in schedule.working_days():
        for slot in config.shifts:
            value = assignment.get(slot.id)
            if slot.dual_department:
                assert isinstance(value, DeptPair)
                assert value.dept_a is not None and value.dept_b is not None
                assert config.get_employee(value.dept_a).department == Department.A
                assert config.get_employee(value.dept_b).department == Department.B
            else:
                assert value is not None


def test_weekends_carry_no_assignment(february):
    schedule = february.schedule
    for day in (4, 5, 11, 12, 18, 19, 25, 26):
        assert not schedule[day].is_working
        assert schedule[day].reason == "weekend"


def test_no_employee_works_twice_on_a_day(february):
    """
    Why this is important: One person cannot sit two reception shifts on the
    same day. The roster has exactly as many people as daily positions, so
    any duplicate would also leave somebody idle.
    """
    for day, assignment in february.schedule.working_days():
        placed = assignment.employees()
        assert len(placed) == len(set(placed)), f"duplicate placement on day {day}"


def test_restricted_worker_only_on_allowed_shifts(february, config):
    """
    Why this is important: The restricted employee cannot start at 07:00 or
    work the 09:30 shift. Breaking this would put them on a shift they cannot
    physically attend.
    """
    restricted = config.restricted_id
    for day, assignment in february.schedule.working_days():
        for slot_id, _ in assignment.positions_of(restricted):
            assert slot_id in config.restriction.allowed_slots, f"day {day} shift {slot_id}"

    assert february.counter.count(restricted, 1) == 0
    assert february.counter.count(restricted, 6) == 0


def test_anchor_works_every_day_and_meets_target_minimum(february, config):
    anchor = config.anchor_id
    for day, assignment in february.schedule.working_days():
        assert anchor in assignment, f"anchor missing on day {day}"

    assert february.counter.count(anchor, config.anchor.target_slot) >= config.anchor.minimum
    assert february.unmet_guarantees == []


def test_everyone_gets_at_least_one_shift(february, config):
    for emp_id in config.employee_ids():
        assert february.counter.total(emp_id) >= 1


def test_counter_matches_schedule(february, config):
    """
    Why this is important: Statistics, exports and saved solutions all read
    the counter. If it drifts from the actual schedule, every report lies.
    """
    assert february.violations == []
    assert validate_schedule(config, february.schedule, february.counter) == []
    for emp_id in config.employee_ids():
        assert february.counter.total(emp_id) == february.schedule.days_with(emp_id)
        assert february.statistics[emp_id]["total_shifts"] == february.counter.total(emp_id)


def test_generation_without_seed_is_deterministic(scheduler):
    first = scheduler.generate_schedule(2023, 2)
    second = scheduler.generate_schedule(2023, 2)
    assert first.schedule.to_dict() == second.schedule.to_dict()
    assert first.counter.snapshot() == second.counter.snapshot()


def test_same_seed_reproduces_the_same_solution(scheduler):
    first = scheduler.generate_schedule(2023, 3, seed=1234)
    second = scheduler.generate_schedule(2023, 3, seed=1234)
    assert first.schedule.to_dict() == second.schedule.to_dict()
    assert first.seed == 1234


def test_runs_do_not_share_state(scheduler):
    """
    Why this is important: The GUI generates several solutions in a row.
    Counts left over from an earlier run would skew every later solution.
    """
    first = scheduler.generate_schedule(2023, 2)
    scheduler.generate_schedule(2023, 3, seed=7)
    again = scheduler.generate_schedule(2023, 2)
    assert first.counter is not again.counter
    assert first.counter.snapshot() == again.counter.snapshot()


def test_single_working_day_reports_unmet_anchor_minimum(scheduler, config):
    """
    Why this is important: With one working day the anchor cannot reach two
    shifts on the target slot. The run has to finish and flag the gap
    instead of crashing or silently dropping the guarantee.
    """
    closed = weekdays_except(2023, 2, keep={1})
    result = scheduler.generate_schedule(2023, 2, closed_days=closed)

    assert result.success
    assert result.schedule.count_working_days() == 1
    assert result.schedule[2].reason == "closed"
    assert config.anchor_id in result.schedule[1]

    anchor_issues = [i for i in result.unmet_guarantees if i.employee_id == config.anchor_id]
    assert len(anchor_issues) == 1
    assert "unmet" in result.message


def test_month_without_working_days(scheduler, config):
    closed = weekdays_except(2023, 2, keep=set())
    result = scheduler.generate_schedule(2023, 2, closed_days=closed)

    assert result.success
    assert result.schedule.count_working_days() == 0
    assert all(result.counter.total(emp_id) == 0 for emp_id in config.employee_ids())

    flagged = {issue.employee_id for issue in result.unmet_guarantees}
    expected = set(config.employee_ids()) - {config.restricted_id}
    assert flagged == expected


def test_large_roster_with_one_day_flags_idle_employees():
    """
    Why this is important: With more employees than positions on the only
    working day, somebody stays idle. Each of them must be reported.
    """
    config = build_config(6, 6)
    result = ShiftScheduler(config).generate_schedule(2023, 2, closed_days=weekdays_except(2023, 2, keep={1}))

    assert result.success
    idle = [
        emp_id for emp_id in config.employee_ids()
        if result.counter.total(emp_id) == 0 and emp_id != config.restricted_id
    ]
    assert len(idle) >= 3

    flagged = {i.employee_id for i in result.unmet_guarantees if i.kind == IssueKind.UNMET_GUARANTEE}
    assert set(idle) <= flagged
    assert result.violations == []


@pytest.mark.parametrize("size_a,size_b", [(4, 4), (3, 5), (5, 3), (3, 6), (6, 6), (5, 4)])
@pytest.mark.parametrize("seed", [None, 1, 42, 2024])
def test_invariants_hold_for_any_roster_and_seed(size_a, size_b, seed):
    config = build_config(size_a, size_b)
    result = ShiftScheduler(config).generate_schedule(2024, 5, seed=seed)

    assert result.success
    assert result.violations == []
    assert result.issues_of(IssueKind.COVERAGE_FALLBACK) == []

    for day, assignment in result.schedule.working_days():
        placed = assignment.employees()
        assert len(placed) == len(set(placed))
        for slot_id, _ in assignment.positions_of("a1"):
            assert slot_id in {2, 3, 4, 5}

    for emp_id in config.employee_ids():
        per_slot = sum(result.counter.count(emp_id, slot_id) for slot_id in config.shift_ids())
        assert result.counter.total(emp_id) == per_slot
        assert result.counter.total(emp_id) == result.schedule.days_with(emp_id)

    # Repair guarantees
    for day, assignment in result.schedule.working_days():
        assert "a2" in assignment, f"anchor missing on day {day}"
    assert result.counter.count("a2", 5) >= 2
    for emp_id in config.employee_ids():
        if emp_id not in ("a1", "a2"):
            assert result.counter.total(emp_id) >= 1, f"{emp_id} never works"
    assert result.unmet_guarantees == []


def test_unfillable_slot_is_recorded_as_placement_failure():
    """
    Why this is important: When nobody in a department may take a shift, the
    run must still finish, leave the position empty and report the month as
    incomplete rather than crash or claim success.
    """
    departments = {
        Department.A: [Employee("a1", "A-1", Department.A)],
        Department.B: [Employee(f"b{i}", f"B-{i}", Department.B) for i in range(1, 5)],
    }
    config = RosterConfig(
        departments=departments,
        shifts=default_shift_catalog(),
        restriction=RestrictionRule("a1", frozenset({2, 3, 4, 5}), {5: 3}),
        anchor=AnchorRule("b1", target_slot=5, minimum=2),
    )

    result = ShiftScheduler(config).generate_schedule(2023, 2)

    assert result.success is False
    assert result.placement_failures
    assert all(issue.slot_id == 6 for issue in result.placement_failures)
    assert result.schedule[1][6].dept_a is None
    assert result.schedule[1][6].dept_b is not None
    assert result.message.startswith("Schedule incomplete")
    assert any("No dept_a employee on shift 6" in v for v in result.violations)


def test_invalid_month_is_rejected(scheduler):
    with pytest.raises(ConfigurationError):
        scheduler.generate_schedule(2023, 0)
    with pytest.raises(ConfigurationError):
        scheduler.generate_schedule(2023, 13)


def test_closed_day_outside_month_is_rejected(scheduler):
    with pytest.raises(ConfigurationError):
        scheduler.generate_schedule(2023, 2, closed_days=[29])


def test_empty_department_is_rejected():
    config = build_config(4, 4)
    config.departments[Department.B] = []
    with pytest.raises(ConfigurationError):
        ShiftScheduler(config)


def test_unknown_shift_in_restriction_is_rejected():
    config = build_config(4, 4)
    config.restriction = RestrictionRule("a1", frozenset({2, 9}))
    with pytest.raises(ConfigurationError):
        ShiftScheduler(config)


def test_anchor_cannot_be_the_restricted_worker():
    config = build_config(4, 4)
    config.anchor = AnchorRule("a1")
    with pytest.raises(ConfigurationError):
        ShiftScheduler(config)


def test_anchor_target_must_be_single_slot():
    config = build_config(4, 4)
    config.anchor = AnchorRule("a2", target_slot=3)
    with pytest.raises(ConfigurationError):
        ShiftScheduler(config)


def test_config_survives_serialization(config):
    restored = RosterConfig.from_dict(config.to_dict())
    assert restored.employee_ids() == config.employee_ids()
    assert restored.restriction.allowed_slots == config.restriction.allowed_slots
    assert restored.restriction.slot_caps == {5: 3}
    assert restored.anchor == config.anchor
    assert [s.id for s in restored.dual_slots()] == [3, 6]


def test_malformed_config_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        RosterConfig.from_dict({"departments": {"dept_a": [{"name": "No id"}]}})
