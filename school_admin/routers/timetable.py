from typing import Optional, Dict, List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from school_admin.database import get_db
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.profile import Profile
from school_admin.schemas.schedule import ScheduleOut, TeacherTimetableOut
from school_admin.utils.auth import require_teacher
from school_admin.utils.timeslots import DAYS_OF_WEEK, day_index, normalize_day

router = APIRouter(prefix="/teacher", tags=["Teacher - Timetable"])


@router.get("/schedules", response_model=TeacherTimetableOut)
def get_my_schedules(
    db: Session = Depends(get_db),
    user: Profile = Depends(require_teacher),
    day: Optional[str] = Query(None, description="Monday..Sunday"),
):
    q = (
        db.query(ClassSchedule)
        .options(joinedload(ClassSchedule.period), joinedload(ClassSchedule.room))
        .filter(
            ClassSchedule.teacher_id == user.id,
            ClassSchedule.is_active.is_(True),
        )
    )
    if day:
        q = q.filter(ClassSchedule.day_of_week == normalize_day(day))

    rows = sorted(q.all(), key=lambda s: (day_index(s.day_of_week), s.start_time))
    schedules = [ScheduleOut.model_validate(s) for s in rows]

    grid: Dict[str, List[ScheduleOut]] = {d: [] for d in DAYS_OF_WEEK}
    for s in schedules:
        grid.setdefault(s.day_of_week, []).append(s)

    return TeacherTimetableOut(schedules=schedules, grid=grid)
