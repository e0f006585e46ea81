"""
Per-run state shared by the day assigner and the repair stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any

from .roster_model import Department, MonthSchedule, RosterConfig
from .selection import SelectionPolicy
from .shift_counter import ShiftCounter


class IssueKind(Enum):
    PLACEMENT_FAILURE = "placement_failure"
    COVERAGE_FALLBACK = "coverage_fallback"
    UNMET_GUARANTEE = "unmet_guarantee"


@dataclass
class SchedulingIssue:
    """Non-fatal problem found while generating a roster"""
    kind: IssueKind
    description: str
    day: Optional[int] = None
    slot_id: Optional[int] = None
    employee_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "day": self.day,
            "slotId": self.slot_id,
            "employeeId": self.employee_id
        }


@dataclass
class GenerationRun:
    """Everything one generate_schedule call owns; never shared between runs"""
    config: RosterConfig
    policy: SelectionPolicy
    counter: ShiftCounter
    rosters: Dict[Department, List[str]]
    schedule: MonthSchedule
    issues: List[SchedulingIssue] = field(default_factory=list)

    def report(self, kind: IssueKind, description: str, day: int = None,
               slot_id: int = None, employee_id: str = None):
        self.issues.append(SchedulingIssue(kind, description, day, slot_id, employee_id))

    def combined_roster(self) -> List[str]:
        return self.rosters[Department.A] + self.rosters[Department.B]
