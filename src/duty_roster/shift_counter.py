"""
Per-employee shift tally used while a roster is being generated.
"""

from typing import Dict, Iterable, List, Any


class ShiftCounter:
    """Counts how often each employee holds each slot during one run.

    The total is always derived from the per-slot counts, so the two can
    never disagree.
    """

    def __init__(self, employee_ids: Iterable[str], slot_ids: Iterable[int]):
        self.slot_ids: List[int] = list(slot_ids)
        self._counts: Dict[str, Dict[int, int]] = {
            emp_id: {slot_id: 0 for slot_id in self.slot_ids}
            for emp_id in employee_ids
        }

    def __contains__(self, emp_id: str) -> bool:
        return emp_id in self._counts

    def employee_ids(self) -> List[str]:
        return list(self._counts)

    def total(self, emp_id: str) -> int:
        return sum(self._counts[emp_id].values())

    def count(self, emp_id: str, slot_id: int) -> int:
        return self._counts[emp_id].get(slot_id, 0)

    def record(self, emp_id: str, slot_id: int):
        """Register one placement of the employee on the slot"""
        self._counts[emp_id][slot_id] += 1

    def release(self, emp_id: str, slot_id: int):
        """Undo one placement, e.g. when a repair stage evicts the employee"""
        if self._counts[emp_id][slot_id] <= 0:
            raise ValueError(f"Employee {emp_id} holds no placement on slot {slot_id} to release")
        self._counts[emp_id][slot_id] -= 1

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Plain-dict copy: {emp_id: {"total": n, "shifts": {slot_id: n}}}"""
        return {
            emp_id: {"total": sum(per_slot.values()), "shifts": dict(per_slot)}
            for emp_id, per_slot in self._counts.items()
        }

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Dict[str, Any]]) -> 'ShiftCounter':
        slot_ids = []
        for entry in snapshot.values():
            for slot_id in entry.get("shifts", {}):
                if int(slot_id) not in slot_ids:
                    slot_ids.append(int(slot_id))
        counter = cls(snapshot.keys(), sorted(slot_ids))
        for emp_id, entry in snapshot.items():
            for slot_id, value in entry.get("shifts", {}).items():
                counter._counts[emp_id][int(slot_id)] = int(value)
        return counter
