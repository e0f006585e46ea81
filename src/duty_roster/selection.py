"""
Selection Policy for Duty Roster Planning

Chooses one employee out of a candidate pool for a slot and commits the
placement to the shift counter.
"""

import logging
from typing import List, Sequence

from .roster_model import RosterConfig, SchedulerError
from .shift_counter import ShiftCounter

logger = logging.getLogger(__name__)


class PlacementFailure(SchedulerError):
    """Raised when no candidate is left for a slot"""

    def __init__(self, slot_id: int, message: str = None):
        self.slot_id = slot_id
        super().__init__(message or f"No available employee for shift {slot_id}")


class SelectionPolicy:
    """Cap filter, then zero-total priority, then lowest composite score.

    Ties go to the first candidate in pool order, so the result only varies
    when the caller varies the pool order.
    """

    def __init__(self, config: RosterConfig):
        self.config = config

    def score(self, counter: ShiftCounter, emp_id: str, slot_id: int) -> int:
        return (counter.total(emp_id) * self.config.total_weight
                + counter.count(emp_id, slot_id) * self.config.slot_weight)

    def rank(self, pool: Sequence[str], slot_id: int, counter: ShiftCounter) -> List[str]:
        """Return the candidates that survive the cap and zero-total filters"""
        under_cap = [
            emp_id for emp_id in pool
            if counter.count(emp_id, slot_id) < self.config.cap_for(emp_id, slot_id)
        ]
        # Everyone at cap: coverage wins over fairness
        candidates = under_cap or list(pool)

        restricted_id = self.config.restricted_id
        unused = [
            emp_id for emp_id in candidates
            if emp_id != restricted_id and counter.total(emp_id) == 0
        ]
        return unused or candidates

    def select(self, pool: Sequence[str], slot_id: int, counter: ShiftCounter) -> str:
        """Pick one employee for the slot and record the placement"""
        if not pool:
            raise PlacementFailure(slot_id)

        candidates = self.rank(pool, slot_id, counter)

        best = candidates[0]
        best_score = self.score(counter, best, slot_id)
        for emp_id in candidates[1:]:
            candidate_score = self.score(counter, emp_id, slot_id)
            if candidate_score < best_score:
                best = emp_id
                best_score = candidate_score

        counter.record(best, slot_id)
        logger.debug(f"Selected {best} for shift {slot_id} (score {best_score}) from {len(pool)} candidates")
        return best
