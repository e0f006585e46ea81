import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from duty_roster.roster_model import default_roster_config
from duty_roster.selection import PlacementFailure, SelectionPolicy
from duty_roster.shift_counter import ShiftCounter


@pytest.fixture
def config():
    return default_roster_config()


@pytest.fixture
def policy(config):
    return SelectionPolicy(config)


@pytest.fixture
def counter(config):
    return ShiftCounter(config.employee_ids(), config.shift_ids())


def give(counter, emp_id, slot_id, times):
    for _ in range(times):
        counter.record(emp_id, slot_id)


def test_empty_pool_raises_placement_failure(policy, counter):
    with pytest.raises(PlacementFailure) as exc_info:
        policy.select([], 4, counter)
    assert exc_info.value.slot_id == 4


def test_selection_records_the_placement(policy, counter):
    chosen = policy.select(["b1", "b2"], 1, counter)
    assert counter.count(chosen, 1) == 1
    assert counter.total(chosen) == 1


def test_ties_go_to_pool_order(policy, counter):
    assert policy.select(["b2", "b1"], 1, counter) == "b2"


def test_lowest_score_wins(policy, counter):
    give(counter, "b1", 1, 2)
    give(counter, "b2", 4, 2)
    # Equal totals; b2 has never worked shift 1
    assert policy.select(["b1", "b2"], 1, counter) == "b2"


def test_zero_total_employees_are_preferred(policy, counter):
    """
    Why this is important: Someone without any shift yet must be picked
    before anyone else, otherwise the minimum-one-shift repair has to
    overwrite many placements at the end of the month.
    """
    give(counter, "b1", 2, 1)
    assert policy.select(["b1", "b2"], 2, counter) == "b2"


def test_restricted_worker_is_excluded_from_zero_total_priority(policy, counter):
    """
    Why this is important: The restricted worker only fits a few shifts.
    Letting them jump the queue on day one would use up those shifts before
    the others get a turn.
    """
    assert policy.select(["a1", "b2"], 2, counter) == "b2"


def test_cap_filters_out_saturated_candidates(policy, counter):
    give(counter, "b1", 1, 5)
    give(counter, "b2", 2, 8)
    # b1 scores 75 against 80 for b2, but b1 already holds shift 1 five times
    assert policy.select(["b1", "b2"], 1, counter) == "b2"


def test_cap_is_ignored_when_everyone_is_at_cap(policy, counter):
    give(counter, "b1", 1, 5)
    assert policy.select(["b1"], 1, counter) == "b1"
    assert counter.count("b1", 1) == 6


def test_restricted_worker_has_tighter_cap_on_shift_five(policy, counter, config):
    assert config.cap_for("a1", 5) == 3
    assert config.cap_for("a1", 4) == config.default_cap
    give(counter, "a1", 5, 3)
    give(counter, "b1", 4, 5)
    # a1 scores 45 against 50, but has reached the cap on shift 5
    assert policy.select(["a1", "b1"], 5, counter) == "b1"


def test_rank_keeps_pool_order(policy, counter):
    give(counter, "b3", 1, 1)
    assert policy.rank(["b4", "b3", "b2"], 1, counter) == ["b4", "b2"]


def test_counter_release_undoes_a_placement(counter):
    counter.record("b1", 3)
    counter.release("b1", 3)
    assert counter.total("b1") == 0
    with pytest.raises(ValueError):
        counter.release("b1", 3)


def test_counter_snapshot_round_trip(counter):
    give(counter, "a3", 6, 2)
    restored = ShiftCounter.from_snapshot(counter.snapshot())
    assert restored.total("a3") == 2
    assert restored.count("a3", 6) == 2
    assert restored.snapshot() == counter.snapshot()
