# school_admin/utils/conflict.py
"""
Teacher / room double-booking checks for class schedules.

Pure functions: callers fetch the rows and persist the outcome. Rows may be
ORM objects (ClassSchedule) or plain dicts.

Overlap rule is half-open: [start, end) vs [start, end), so 09:00-10:00 and
10:00-11:00 do not clash.
"""
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Dict, Iterable, List, Mapping, Optional

from school_admin.utils.errors import ConflictError
from school_admin.utils.timeslots import check_time_range, day_index, normalize_day, normalize_time


@dataclass
class ScheduleCandidate:
    school_id: Optional[str]
    day_of_week: Optional[str]
    start_time: Optional[str]
    end_time: Optional[str]
    teacher_id: Optional[str] = None
    room_id: Optional[str] = None
    # 編輯時排除自己
    exclude_id: Optional[str] = None


@dataclass
class DimensionConflict:
    has_conflict: bool = False
    entries: List[Any] = field(default_factory=list)


@dataclass
class ConflictResult:
    teacher: DimensionConflict = field(default_factory=DimensionConflict)
    room: DimensionConflict = field(default_factory=DimensionConflict)

    @property
    def has_conflict(self) -> bool:
        return self.teacher.has_conflict or self.room.has_conflict

    def raise_for_conflict(self):
        if self.teacher.has_conflict:
            raise ConflictError(
                "Teacher already has a class scheduled at this time",
                error="Schedule conflict",
                conflicts=[describe_entry(e) for e in self.teacher.entries],
            )
        if self.room.has_conflict:
            raise ConflictError(
                "Room is already booked at this time",
                error="Room conflict",
                conflicts=[describe_entry(e) for e in self.room.entries],
            )

    def to_dict(self) -> dict:
        return {
            "has_conflict": self.has_conflict,
            "teacher_conflict": self.teacher.has_conflict,
            "teacher_conflicts": [describe_entry(e) for e in self.teacher.entries],
            "room_conflict": self.room.has_conflict,
            "room_conflicts": [describe_entry(e) for e in self.room.entries],
        }


def _get(entry: Any, name: str, default=None):
    if isinstance(entry, Mapping):
        return entry.get(name, default)
    return getattr(entry, name, default)


def _same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def describe_entry(entry: Any) -> Dict[str, Any]:
    return {
        "id": _get(entry, "id"),
        "subject": _get(entry, "subject"),
        "day_of_week": _get(entry, "day_of_week"),
        "start_time": normalize_time(_get(entry, "start_time")),
        "end_time": normalize_time(_get(entry, "end_time")),
        "teacher_id": _get(entry, "teacher_id"),
        "room_id": _get(entry, "room_id"),
    }


def intervals_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Strict: touching boundaries are not an overlap."""
    return a_start < b_end and a_end > b_start


def find_conflicts(candidate: ScheduleCandidate, existing: Iterable[Any]) -> ConflictResult:
    """
    Compare one candidate against existing schedules.

    Only active rows of the same school and day are considered, minus
    ``candidate.exclude_id``. A dimension without an id on the candidate is
    skipped, as is everything when the candidate has no day or times.
    """
    result = ConflictResult()

    day = normalize_day(candidate.day_of_week)
    start = normalize_time(candidate.start_time)
    end = normalize_time(candidate.end_time)
    if not (day and start and end):
        return result
    check_time_range(start, end)

    if not candidate.teacher_id and not candidate.room_id:
        return result

    overlapping = []
    for e in existing:
        if not _get(e, "is_active", True):
            continue
        if _same_id(_get(e, "id"), candidate.exclude_id):
            continue
        e_school = _get(e, "school_id")
        if candidate.school_id is not None and e_school is not None and not _same_id(e_school, candidate.school_id):
            continue
        if normalize_day(_get(e, "day_of_week")) != day:
            continue
        e_start = normalize_time(_get(e, "start_time"))
        e_end = normalize_time(_get(e, "end_time"))
        if not e_start or not e_end:
            continue
        if intervals_overlap(e_start, e_end, start, end):
            overlapping.append(e)

    if candidate.teacher_id:
        hits = [e for e in overlapping if _same_id(_get(e, "teacher_id"), candidate.teacher_id)]
        result.teacher = DimensionConflict(bool(hits), hits)
    if candidate.room_id:
        hits = [e for e in overlapping if _same_id(_get(e, "room_id"), candidate.room_id)]
        result.room = DimensionConflict(bool(hits), hits)
    return result


def find_schedule_clashes(entries: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Every pair of active schedules that double-books a teacher or a room.
    [{"type": "teacher_double_booking", "day_of_week", "resource_id", "schedules": [a, b]}, ...]
    """
    groups: Dict[tuple, list] = {}
    for e in entries:
        if not _get(e, "is_active", True):
            continue
        day = normalize_day(_get(e, "day_of_week"))
        start = normalize_time(_get(e, "start_time"))
        end = normalize_time(_get(e, "end_time"))
        if not (day and start and end):
            continue
        for kind, key in (("teacher_double_booking", "teacher_id"), ("room_double_booking", "room_id")):
            rid = _get(e, key)
            if rid:
                groups.setdefault((kind, day, str(rid)), []).append((start, end, e))

    clashes = []
    for (kind, day, rid), rows in groups.items():
        rows.sort(key=lambda r: (r[0], r[1]))
        for (a_start, a_end, a), (b_start, b_end, b) in combinations(rows, 2):
            if intervals_overlap(a_start, a_end, b_start, b_end):
                clashes.append({
                    "type": kind,
                    "day_of_week": day,
                    "resource_id": rid,
                    "schedules": [describe_entry(a), describe_entry(b)],
                })

    clashes.sort(key=lambda c: (day_index(c["day_of_week"]), c["type"], c["schedules"][0]["start_time"]))
    return clashes
