from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Union


class SpecialActivityKind(str, Enum):
    flag_ceremony = "flag_ceremony"
    class_activities = "class_activities"


@dataclass(frozen=True)
class RealTeacher:
    teacher_id: str


@dataclass(frozen=True)
class SpecialActivity:
    kind: SpecialActivityKind


@dataclass(frozen=True)
class ElectiveReservation:
    pass


# Only RealTeacher occupies a teacher; the other variants block the class alone.
Occupant = Union[RealTeacher, SpecialActivity, ElectiveReservation]

SlotKey = tuple[int, str]


class ConflictMatrix:
    """Occupancy index for one generation run.

    Classes and teachers are tracked in separate maps so an id shared by a
    class and a teacher can never mask one another.
    """

    def __init__(self) -> None:
        self._classes: dict[str, dict[SlotKey, Occupant]] = defaultdict(dict)
        self._teachers: dict[str, set[SlotKey]] = defaultdict(set)

    def is_class_free(self, class_id: str, day: int, slot_id: str) -> bool:
        occupied = self._classes.get(class_id)
        return occupied is None or (day, slot_id) not in occupied

    def is_teacher_free(self, teacher_id: str, day: int, slot_id: str) -> bool:
        occupied = self._teachers.get(teacher_id)
        return occupied is None or (day, slot_id) not in occupied

    def is_free(self, entity_id: str, day: int, slot_id: str) -> bool:
        return self.is_class_free(entity_id, day, slot_id) and self.is_teacher_free(entity_id, day, slot_id)

    def mark_occupied(self, class_id: str, occupant: Occupant, day: int, slot_id: str) -> None:
        key = (day, slot_id)
        self._classes[class_id][key] = occupant
        if isinstance(occupant, RealTeacher):
            self._teachers[occupant.teacher_id].add(key)

    def occupant_at(self, class_id: str, day: int, slot_id: str) -> Occupant | None:
        return self._classes.get(class_id, {}).get((day, slot_id))

    def occupied_slots(self, entity_id: str) -> set[SlotKey]:
        slots = set(self._classes.get(entity_id, {}))
        slots.update(self._teachers.get(entity_id, set()))
        return slots

    def lessons_on_day(self, class_id: str, day: int) -> int:
        return sum(
            1
            for (occupied_day, _), occupant in self._classes.get(class_id, {}).items()
            if occupied_day == day and isinstance(occupant, RealTeacher)
        )
