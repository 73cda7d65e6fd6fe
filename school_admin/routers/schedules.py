from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from school_admin.config import settings
from school_admin.database import get_db
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.period import Period
from school_admin.models.profile import Profile
from school_admin.models.room import Room
from school_admin.schemas.schedule import (
    ScheduleCreate, ScheduleUpdate, ScheduleOut, ScheduleEnvelope, ScheduleListOut,
    ConflictCheckIn, ConflictCheckOut, ScheduleClashReportOut,
)
from school_admin.utils.auth import get_current_user, get_school_id
from school_admin.utils.conflict import (
    ScheduleCandidate, describe_entry, find_conflicts, find_schedule_clashes,
)
from school_admin.utils.timeslots import DAYS_OF_WEEK, check_time_range, normalize_day

import logging
logger = logging.getLogger("school_admin.schedules")


router = APIRouter(prefix="/school-admin/schedules", tags=["School Admin - Schedules"])

# Monday..Sunday 依序排
DAY_ORDER = case({d: i for i, d in enumerate(DAYS_OF_WEEK)}, value=ClassSchedule.day_of_week, else_=len(DAYS_OF_WEEK))


def _with_relations(q):
    return q.options(
        joinedload(ClassSchedule.teacher),
        joinedload(ClassSchedule.period),
        joinedload(ClassSchedule.room),
    )


def commit_or_400(db: Session):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e.orig))


def get_owned_schedule(db: Session, schedule_id: str, school_id: str) -> ClassSchedule:
    s = _with_relations(db.query(ClassSchedule)).filter(ClassSchedule.id == schedule_id).first()
    if not s:
        raise HTTPException(status_code=404, detail="Schedule not found")
    if s.school_id != school_id:
        raise HTTPException(status_code=403, detail="Forbidden: Schedule does not belong to your school")
    return s


def resolve_period_times(db: Session, school_id: str, period_id: str):
    p = (
        db.query(Period)
        .filter(Period.id == period_id, Period.school_id == school_id, Period.is_active.is_(True))
        .first()
    )
    if not p:
        raise HTTPException(status_code=400, detail={
            "error": "Invalid period",
            "details": "The selected period does not exist or is not associated with this school",
        })
    return p.start_time, p.end_time


def check_references(db: Session, school_id: str, teacher_id: Optional[str], room_id: Optional[str]):
    # FK 檢查：老師需是本校的 teacher，教室需是本校啟用中的教室
    if teacher_id:
        teacher = (
            db.query(Profile.id)
            .filter(Profile.id == teacher_id, Profile.role == "teacher", Profile.school_id == school_id)
            .first()
        )
        if not teacher:
            raise HTTPException(status_code=400, detail="teacher_id not found")
    if room_id:
        if not db.query(Room.id).filter(Room.id == room_id, Room.school_id == school_id, Room.is_active.is_(True)).first():
            raise HTTPException(status_code=400, detail="room_id not found")


def fetch_day_schedules(
    db: Session,
    school_id: str,
    day_of_week: str,
    teacher_id: Optional[str] = None,
    room_id: Optional[str] = None,
) -> List[ClassSchedule]:
    """Active rows of one school/day that share the teacher or the room."""
    resource_filters = []
    if teacher_id:
        resource_filters.append(ClassSchedule.teacher_id == teacher_id)
    if room_id:
        resource_filters.append(ClassSchedule.room_id == room_id)
    if not resource_filters:
        return []

    return (
        db.query(ClassSchedule)
        .filter(
            ClassSchedule.school_id == school_id,
            ClassSchedule.day_of_week == day_of_week,
            ClassSchedule.is_active.is_(True),
            or_(*resource_filters),
        )
        .all()
    )


def ensure_no_conflict(db: Session, candidate: ScheduleCandidate, extra_rows: Optional[list] = None):
    existing = fetch_day_schedules(
        db, candidate.school_id, candidate.day_of_week, candidate.teacher_id, candidate.room_id,
    )
    if extra_rows:
        existing = existing + list(extra_rows)

    result = find_conflicts(candidate, existing)
    if result.has_conflict:
        entries = result.teacher.entries or result.room.entries
        logger.info(
            "Schedule conflict: teacher=%s room=%s day=%s new=%s-%s existing=%s",
            candidate.teacher_id, candidate.room_id, candidate.day_of_week,
            candidate.start_time, candidate.end_time,
            [f"{d['start_time']}-{d['end_time']}" for d in map(describe_entry, entries)],
        )
    result.raise_for_conflict()


@router.get("", response_model=ScheduleListOut)
def list_schedules(
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),

    day: Optional[str] = Query(None, description="Monday..Sunday"),
    grade: Optional[str] = Query(None),
    teacher_id: Optional[str] = Query(None),
    class_id: Optional[str] = Query(None),
):
    q = _with_relations(db.query(ClassSchedule)).filter(
        ClassSchedule.school_id == school_id,
        ClassSchedule.is_active.is_(True),
    )

    if day:
        q = q.filter(ClassSchedule.day_of_week == normalize_day(day))
    if grade:
        q = q.filter(ClassSchedule.grade == grade)
    if teacher_id:
        q = q.filter(ClassSchedule.teacher_id == teacher_id)
    if class_id:
        q = q.filter(ClassSchedule.class_id == class_id)

    rows = q.order_by(DAY_ORDER, ClassSchedule.start_time.asc()).all()
    return ScheduleListOut(schedules=[ScheduleOut.model_validate(s) for s in rows])


@router.get("/conflicts", response_model=ScheduleClashReportOut)
def schedule_clash_report(
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    rows = (
        db.query(ClassSchedule)
        .filter(ClassSchedule.school_id == school_id, ClassSchedule.is_active.is_(True))
        .all()
    )
    clashes = find_schedule_clashes(rows)
    by_type = {
        "teacher_double_booking": len([c for c in clashes if c["type"] == "teacher_double_booking"]),
        "room_double_booking": len([c for c in clashes if c["type"] == "room_double_booking"]),
    }
    return ScheduleClashReportOut(total_conflicts=len(clashes), conflicts_by_type=by_type, conflicts=clashes)


@router.post("/check-conflicts", response_model=ConflictCheckOut)
def check_schedule_conflicts(
    body: ConflictCheckIn,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    start, end = body.start_time, body.end_time
    if body.period_id:
        start, end = resolve_period_times(db, school_id, body.period_id)

    candidate = ScheduleCandidate(
        school_id=school_id,
        day_of_week=body.day_of_week,
        start_time=start,
        end_time=end,
        teacher_id=body.teacher_id,
        room_id=body.room_id,
        exclude_id=body.exclude_id,
    )
    existing = fetch_day_schedules(db, school_id, body.day_of_week, body.teacher_id, body.room_id)
    return ConflictCheckOut(**find_conflicts(candidate, existing).to_dict())


@router.get("/{schedule_id}", response_model=ScheduleEnvelope)
def get_schedule(
    schedule_id: str,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    s = get_owned_schedule(db, schedule_id, school_id)
    return ScheduleEnvelope(schedule=ScheduleOut.model_validate(s))


@router.post("", response_model=ScheduleEnvelope, status_code=201)
def create_schedule(
    body: ScheduleCreate,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
    user: Profile = Depends(get_current_user),
):
    # period 優先，否則用 start_time / end_time
    start, end = body.start_time, body.end_time
    if body.period_id:
        start, end = resolve_period_times(db, school_id, body.period_id)

    if not start or not end:
        raise HTTPException(status_code=400, detail={
            "error": "Missing required fields",
            "details": "Either period_id must be provided, or start_time and end_time must be provided",
        })
    check_time_range(start, end)
    check_references(db, school_id, body.teacher_id, body.room_id)

    ensure_no_conflict(db, ScheduleCandidate(
        school_id=school_id,
        day_of_week=body.day_of_week,
        start_time=start,
        end_time=end,
        teacher_id=body.teacher_id,
        room_id=body.room_id,
    ))

    s = ClassSchedule(
        school_id=school_id,
        class_id=body.class_id,
        teacher_id=body.teacher_id,
        subject=body.subject,
        grade=body.grade,
        day_of_week=body.day_of_week,
        period_id=body.period_id,
        room_id=body.room_id,
        start_time=start,
        end_time=end,
        academic_year=body.academic_year or settings.DEFAULT_ACADEMIC_YEAR,
        notes=body.notes,
        created_by=user.id,
        is_active=True,
    )
    db.add(s)
    commit_or_400(db)
    db.refresh(s)
    logger.info("Schedule %s created for school %s (%s %s-%s)", s.id, school_id, s.day_of_week, start, end)
    return ScheduleEnvelope(schedule=ScheduleOut.model_validate(s))


@router.put("/{schedule_id}", response_model=ScheduleEnvelope)
def update_schedule(
    schedule_id: str,
    body: ScheduleUpdate,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    s = get_owned_schedule(db, schedule_id, school_id)
    data = body.model_dump(exclude_unset=True)

    start, end = data.get("start_time"), data.get("end_time")
    if data.get("period_id"):
        start, end = resolve_period_times(db, school_id, data["period_id"])

    # 沒給的欄位沿用原本的值
    cur_start = start or s.start_time
    cur_end = end or s.end_time
    cur_day = data.get("day_of_week") or s.day_of_week
    cur_teacher = data["teacher_id"] if "teacher_id" in data else s.teacher_id
    cur_room = data["room_id"] if "room_id" in data else s.room_id
    cur_active = s.is_active if data.get("is_active") is None else data["is_active"]

    check_time_range(cur_start, cur_end)
    check_references(
        db, school_id,
        cur_teacher if cur_teacher != s.teacher_id else None,
        cur_room if cur_room != s.room_id else None,
    )

    relevant_change = (
        cur_teacher != s.teacher_id
        or cur_room != s.room_id
        or cur_day != s.day_of_week
        or cur_start != s.start_time
        or cur_end != s.end_time
        or ("period_id" in data and data["period_id"] != s.period_id)
        or (cur_active and not s.is_active)
    )

    if relevant_change and cur_active:
        ensure_no_conflict(db, ScheduleCandidate(
            school_id=school_id,
            day_of_week=cur_day,
            start_time=cur_start,
            end_time=cur_end,
            teacher_id=cur_teacher,
            room_id=cur_room,
            exclude_id=s.id,
        ))
    else:
        logger.debug("Schedule %s: no relevant changes, skipping conflict check", s.id)

    for k in ("class_id", "notes"):
        if k in data:
            setattr(s, k, data[k])
    for k in ("subject", "grade", "academic_year"):
        if data.get(k) is not None:
            setattr(s, k, data[k])
    if "period_id" in data:
        s.period_id = data["period_id"]

    s.teacher_id = cur_teacher
    s.room_id = cur_room
    s.day_of_week = cur_day
    s.start_time = cur_start
    s.end_time = cur_end
    s.is_active = cur_active

    commit_or_400(db)
    db.refresh(s)
    return ScheduleEnvelope(schedule=ScheduleOut.model_validate(s))


@router.delete("/{schedule_id}")
def delete_schedule(
    schedule_id: str,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    s = get_owned_schedule(db, schedule_id, school_id)

    # soft delete
    s.is_active = False
    commit_or_400(db)
    logger.info("Schedule %s deactivated", schedule_id)
    return {"message": "Schedule deleted successfully"}
