"""
Roster Model for Duty Roster Planning

Static description of employees, departments and shift slots, together with
the per-day and per-month assignment structures produced by the scheduler.
"""

import calendar
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple, Union, Any


class SchedulerError(Exception):
    """Base exception for roster scheduling"""
    pass


class ConfigurationError(SchedulerError):
    """Raised when the roster configuration or target month is invalid"""
    pass


class Department(Enum):
    A = "dept_a"
    B = "dept_b"


@dataclass(frozen=True)
class Employee:
    """Employee with a stable identifier independent of the display name"""
    id: str
    name: str
    department: Department

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "department": self.department.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            department=Department(data["department"])
        )


@dataclass(frozen=True)
class ShiftSlot:
    """One of the daily shift slots"""
    id: int
    time: str
    label: str
    dual_department: bool = False  # one person from each department
    partner_id: Optional[int] = None  # display only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "time": self.time,
            "label": self.label,
            "dualDepartment": self.dual_department,
            "partnerId": self.partner_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShiftSlot':
        return cls(
            id=int(data["id"]),
            time=data.get("time", ""),
            label=data.get("label", f"Slot {data['id']}"),
            dual_department=data.get("dualDepartment", False),
            partner_id=data.get("partnerId")
        )


@dataclass
class RestrictionRule:
    """Limits one employee to a subset of slots, with tighter per-slot caps"""
    employee_id: str
    allowed_slots: FrozenSet[int]
    slot_caps: Dict[int, int] = field(default_factory=lambda: {5: 3})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "allowedSlots": sorted(self.allowed_slots),
            "slotCaps": {str(k): v for k, v in self.slot_caps.items()}
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RestrictionRule':
        return cls(
            employee_id=str(data["employeeId"]),
            allowed_slots=frozenset(int(s) for s in data.get("allowedSlots", [])),
            slot_caps={int(k): int(v) for k, v in data.get("slotCaps", {}).items()}
        )


@dataclass
class AnchorRule:
    """Guarantees one employee works every working day and a minimum on one slot"""
    employee_id: str
    target_slot: int = 5
    minimum: int = 2

    def to_dict(self) -> Dict[str, Any]:
        return {"employeeId": self.employee_id, "targetSlot": self.target_slot, "minimum": self.minimum}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnchorRule':
        return cls(
            employee_id=str(data["employeeId"]),
            target_slot=int(data.get("targetSlot", 5)),
            minimum=int(data.get("minimum", 2))
        )


@dataclass
class RosterConfig:
    """Everything the scheduler needs besides the target month"""
    departments: Dict[Department, List[Employee]]
    shifts: List[ShiftSlot]
    restriction: Optional[RestrictionRule] = None
    anchor: Optional[AnchorRule] = None
    default_cap: int = 5
    fill_slot: Optional[int] = None  # slot used to give idle employees a shift
    total_weight: int = 10
    slot_weight: int = 5

    def employees(self) -> List[Employee]:
        """All employees, department A first"""
        return list(self.departments.get(Department.A, [])) + list(self.departments.get(Department.B, []))

    def employee_ids(self) -> List[str]:
        return [emp.id for emp in self.employees()]

    def get_employee(self, emp_id: str) -> Optional[Employee]:
        for emp in self.employees():
            if emp.id == emp_id:
                return emp
        return None

    def name_of(self, emp_id: Optional[str]) -> str:
        if emp_id is None:
            return ""
        emp = self.get_employee(emp_id)
        return emp.name if emp else emp_id

    def get_shift(self, slot_id: int) -> Optional[ShiftSlot]:
        for slot in self.shifts:
            if slot.id == slot_id:
                return slot
        return None

    def shift_ids(self) -> List[int]:
        return [slot.id for slot in self.shifts]

    def dual_slots(self) -> List[ShiftSlot]:
        return [slot for slot in self.shifts if slot.dual_department]

    def single_slots(self) -> List[ShiftSlot]:
        return [slot for slot in self.shifts if not slot.dual_department]

    @property
    def restricted_id(self) -> Optional[str]:
        return self.restriction.employee_id if self.restriction else None

    @property
    def anchor_id(self) -> Optional[str]:
        return self.anchor.employee_id if self.anchor else None

    @property
    def effective_fill_slot(self) -> int:
        if self.fill_slot is not None:
            return self.fill_slot
        if self.anchor:
            return self.anchor.target_slot
        return self.single_slots()[-1].id

    def is_eligible(self, emp_id: str, slot_id: int) -> bool:
        """Check if employee may be placed on the slot at all"""
        if self.restriction and emp_id == self.restriction.employee_id:
            return slot_id in self.restriction.allowed_slots
        return True

    def cap_for(self, emp_id: str, slot_id: int) -> int:
        if self.restriction and emp_id == self.restriction.employee_id:
            return self.restriction.slot_caps.get(slot_id, self.default_cap)
        return self.default_cap

    def validate(self):
        """Raise ConfigurationError for anything that would make generation meaningless"""
        if not self.shifts:
            raise ConfigurationError("Shift catalog is empty")

        slot_ids = self.shift_ids()
        if len(set(slot_ids)) != len(slot_ids):
            raise ConfigurationError(f"Duplicate shift ids in catalog: {slot_ids}")
        if not self.single_slots():
            raise ConfigurationError("Shift catalog has no single slot")

        for dept in Department:
            if not self.departments.get(dept):
                raise ConfigurationError(f"Department {dept.value} has no employees")

        seen = set()
        for dept, members in self.departments.items():
            for emp in members:
                if emp.id in seen:
                    raise ConfigurationError(f"Employee id {emp.id!r} appears more than once")
                if emp.department != dept:
                    raise ConfigurationError(
                        f"Employee {emp.id!r} is listed under {dept.value} but belongs to {emp.department.value}"
                    )
                seen.add(emp.id)

        for slot in self.shifts:
            if slot.partner_id is not None and slot.partner_id not in slot_ids:
                raise ConfigurationError(f"Shift {slot.id} references unknown partner {slot.partner_id}")

        if self.restriction:
            if self.restriction.employee_id not in seen:
                raise ConfigurationError(f"Restricted employee {self.restriction.employee_id!r} is not on the roster")
            unknown = [s for s in self.restriction.allowed_slots if s not in slot_ids]
            unknown += [s for s in self.restriction.slot_caps if s not in slot_ids]
            if unknown:
                raise ConfigurationError(f"Restriction references unknown shift ids: {sorted(set(unknown))}")

        if self.anchor:
            if self.anchor.employee_id not in seen:
                raise ConfigurationError(f"Anchor employee {self.anchor.employee_id!r} is not on the roster")
            target = self.get_shift(self.anchor.target_slot)
            if target is None:
                raise ConfigurationError(f"Anchor target shift {self.anchor.target_slot} is not in the catalog")
            if target.dual_department:
                raise ConfigurationError(f"Anchor target shift {target.id} must be a single slot")
            if self.restriction and self.restriction.employee_id == self.anchor.employee_id:
                raise ConfigurationError("The same employee cannot be both restricted and anchor")

        fill = self.get_shift(self.effective_fill_slot)
        if fill is None:
            raise ConfigurationError(f"Fill shift {self.effective_fill_slot} is not in the catalog")
        if fill.dual_department:
            raise ConfigurationError(f"Fill shift {fill.id} must be a single slot")

        if self.default_cap < 1:
            raise ConfigurationError("default_cap must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "departments": {
                dept.value: [emp.to_dict() for emp in self.departments.get(dept, [])]
                for dept in Department
            },
            "shifts": [slot.to_dict() for slot in self.shifts],
            "restriction": self.restriction.to_dict() if self.restriction else None,
            "anchor": self.anchor.to_dict() if self.anchor else None,
            "defaultCap": self.default_cap,
            "fillSlot": self.fill_slot,
            "totalWeight": self.total_weight,
            "slotWeight": self.slot_weight
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RosterConfig':
        try:
            departments = {
                dept: [Employee.from_dict(e) for e in data.get("departments", {}).get(dept.value, [])]
                for dept in Department
            }
            return cls(
                departments=departments,
                shifts=[ShiftSlot.from_dict(s) for s in data.get("shifts", [])],
                restriction=RestrictionRule.from_dict(data["restriction"]) if data.get("restriction") else None,
                anchor=AnchorRule.from_dict(data["anchor"]) if data.get("anchor") else None,
                default_cap=int(data.get("defaultCap", 5)),
                fill_slot=data.get("fillSlot"),
                total_weight=int(data.get("totalWeight", 10)),
                slot_weight=int(data.get("slotWeight", 5))
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Malformed roster configuration: {e}") from e


def default_shift_catalog() -> List[ShiftSlot]:
    """The six daily slots: 3 and 6 need one person from each department"""
    return [
        ShiftSlot(1, "07:00", "Vakt 1", partner_id=2),
        ShiftSlot(2, "07:15", "Vakt 2", partner_id=1),
        ShiftSlot(3, "08:00", "Vakt 3", dual_department=True),
        ShiftSlot(4, "08:30", "Vakt 4", partner_id=5),
        ShiftSlot(5, "09:00", "Vakt 5", partner_id=4),
        ShiftSlot(6, "09:30", "Vakt 6", dual_department=True),
    ]


def default_roster_config() -> RosterConfig:
    """Eight-person roster used to seed a fresh data file"""
    dept_a = ["Yvonne", "Luma", "Lissa", "Michelle"]
    dept_b = ["Camilla", "Grete", "Ida", "Josephine"]
    departments = {
        Department.A: [Employee(f"a{i + 1}", name, Department.A) for i, name in enumerate(dept_a)],
        Department.B: [Employee(f"b{i + 1}", name, Department.B) for i, name in enumerate(dept_b)],
    }
    return RosterConfig(
        departments=departments,
        shifts=default_shift_catalog(),
        restriction=RestrictionRule(employee_id="a1", allowed_slots=frozenset({2, 3, 4, 5}), slot_caps={5: 3}),
        anchor=AnchorRule(employee_id="a2", target_slot=5, minimum=2)
    )


@dataclass
class DeptPair:
    """Occupants of a dual-department slot"""
    dept_a: Optional[str] = None
    dept_b: Optional[str] = None

    def get(self, dept: Department) -> Optional[str]:
        return self.dept_a if dept == Department.A else self.dept_b

    def set(self, dept: Department, emp_id: Optional[str]):
        if dept == Department.A:
            self.dept_a = emp_id
        else:
            self.dept_b = emp_id

    def members(self) -> List[str]:
        return [e for e in (self.dept_a, self.dept_b) if e is not None]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"dept_a": self.dept_a, "dept_b": self.dept_b}


SlotValue = Union[Optional[str], DeptPair]


@dataclass(frozen=True)
class NonWorkingDay:
    """Sentinel for days that carry no assignment"""
    reason: str = "weekend"
    is_working = False

    def to_dict(self) -> Dict[str, Any]:
        return {"isWeekend": self.reason == "weekend", "isClosed": self.reason == "closed"}


WEEKEND = NonWorkingDay("weekend")
CLOSED = NonWorkingDay("closed")


class DayAssignment:
    """Slot id -> employee id (single slots) or DeptPair (dual slots)"""

    is_working = True

    def __init__(self, slots: Optional[Dict[int, SlotValue]] = None):
        self.slots: Dict[int, SlotValue] = dict(slots or {})

    def __getitem__(self, slot_id: int) -> SlotValue:
        return self.slots[slot_id]

    def __setitem__(self, slot_id: int, value: SlotValue):
        self.slots[slot_id] = value

    def __contains__(self, emp_id: str) -> bool:
        return emp_id in self.employees()

    def __eq__(self, other) -> bool:
        return isinstance(other, DayAssignment) and self.slots == other.slots

    def __repr__(self) -> str:
        return f"DayAssignment({self.slots!r})"

    def get(self, slot_id: int) -> SlotValue:
        return self.slots.get(slot_id)

    def employees(self) -> List[str]:
        """Every placed employee id, one entry per occupied position"""
        placed = []
        for value in self.slots.values():
            if isinstance(value, DeptPair):
                placed.extend(value.members())
            elif value is not None:
                placed.append(value)
        return placed

    def positions_of(self, emp_id: str) -> List[Tuple[int, Optional[Department]]]:
        """(slot id, department side or None for single slots) held by the employee"""
        positions = []
        for slot_id, value in self.slots.items():
            if isinstance(value, DeptPair):
                for dept in Department:
                    if value.get(dept) == emp_id:
                        positions.append((slot_id, dept))
            elif value == emp_id:
                positions.append((slot_id, None))
        return positions

    def to_dict(self) -> Dict[str, Any]:
        return {
            str(slot_id): value.to_dict() if isinstance(value, DeptPair) else value
            for slot_id, value in self.slots.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DayAssignment':
        slots = {}
        for key, value in data.items():
            if isinstance(value, dict):
                slots[int(key)] = DeptPair(value.get("dept_a"), value.get("dept_b"))
            else:
                slots[int(key)] = value
        return cls(slots)


DayEntry = Union[DayAssignment, NonWorkingDay]


class MonthSchedule:
    """Day of month -> DayAssignment or NonWorkingDay for every calendar day"""

    def __init__(self, year: int, month: int, days: Optional[Dict[int, DayEntry]] = None):
        self.year = year
        self.month = month
        self.days: Dict[int, DayEntry] = dict(days or {})

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def __getitem__(self, day: int) -> DayEntry:
        return self.days[day]

    def __setitem__(self, day: int, entry: DayEntry):
        self.days[day] = entry

    def __len__(self) -> int:
        return len(self.days)

    def working_days(self) -> Iterator[Tuple[int, DayAssignment]]:
        """Yield (day, assignment) for working days in ascending order"""
        for day in sorted(self.days):
            entry = self.days[day]
            if entry.is_working:
                yield day, entry

    def count_working_days(self) -> int:
        return sum(1 for _ in self.working_days())

    def days_with(self, emp_id: str) -> int:
        return sum(1 for _, assignment in self.working_days() if emp_id in assignment)

    def to_dict(self) -> Dict[str, Any]:
        return {str(day): entry.to_dict() for day, entry in sorted(self.days.items())}

    @classmethod
    def from_dict(cls, year: int, month: int, data: Dict[str, Any]) -> 'MonthSchedule':
        days = {}
        for key, value in data.items():
            if value.get("isWeekend"):
                days[int(key)] = WEEKEND
            elif value.get("isClosed"):
                days[int(key)] = CLOSED
            else:
                days[int(key)] = DayAssignment.from_dict(value)
        return cls(year, month, days)
