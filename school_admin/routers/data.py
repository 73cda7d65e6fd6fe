import json
from datetime import datetime, timezone
from io import BytesIO
from typing import Literal

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response, StreamingResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from school_admin.config import settings
from school_admin.database import get_db
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.period import Period
from school_admin.models.profile import Profile
from school_admin.models.room import Room
from school_admin.models.school import School
from school_admin.routers.schedules import ensure_no_conflict
from school_admin.schemas.data_import import ImportResultOut, ImportRowError
from school_admin.utils.auth import get_current_user, get_school_id
from school_admin.utils.conflict import ScheduleCandidate
from school_admin.utils.errors import AppError
from school_admin.utils.excel_export import sheets_to_xlsx_bytes, make_filename
from school_admin.utils.timeslots import check_time_range, day_index, normalize_day, normalize_time

import logging
logger = logging.getLogger("school_admin.data")


router = APIRouter(prefix="/school-admin/data", tags=["School Admin - Data"])

SCHEDULE_COLUMNS = [
    "id", "subject", "grade", "day_of_week", "start_time", "end_time",
    "teacher_id", "room_id", "period_id", "class_id", "academic_year", "is_active", "notes",
]
PERIOD_COLUMNS = ["id", "period_number", "start_time", "end_time", "is_active"]
ROOM_COLUMNS = ["id", "room_number", "room_name", "capacity", "location", "is_active"]

REQUIRED_IMPORT_COLUMNS = ("subject", "grade", "day_of_week")


def _rows(objs, columns):
    return [{c: getattr(o, c) for c in columns} for o in objs]


#匯出功能
@router.get("/export")
def export_school_data(
    format: Literal["json", "xlsx"] = Query("json"),
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    school = db.query(School).filter(School.id == school_id).first()
    periods = db.query(Period).filter(Period.school_id == school_id).order_by(Period.period_number.asc()).all()
    rooms = db.query(Room).filter(Room.school_id == school_id).order_by(Room.room_number.asc()).all()
    schedules = db.query(ClassSchedule).filter(ClassSchedule.school_id == school_id).all()
    schedules.sort(key=lambda s: (day_index(s.day_of_week), s.start_time))

    sheets = {
        "Periods": _rows(periods, PERIOD_COLUMNS),
        "Rooms": _rows(rooms, ROOM_COLUMNS),
        "Schedules": _rows(schedules, SCHEDULE_COLUMNS),
    }
    logger.info(
        "Export school %s (%s): %d periods, %d rooms, %d schedules",
        school_id, format, len(periods), len(rooms), len(schedules),
    )

    if format == "xlsx":
        filename = make_filename()
        return StreamingResponse(
            iter([sheets_to_xlsx_bytes(sheets)]),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    payload = {
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "school": {"id": school.id, "name": school.name} if school else {"id": school_id},
        "periods": sheets["Periods"],
        "rooms": sheets["Rooms"],
        "schedules": sheets["Schedules"],
    }
    filename = make_filename(ext="json")
    return Response(
        content=json.dumps(payload, indent=2, default=str),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


#匯入功能
def to_str(v):
    if v is None or (not isinstance(v, str) and pd.isna(v)):
        return None
    s = str(v).strip()
    return None if s == "" or s.lower() == "nan" else s


def to_int(v):
    if v is None or pd.isna(v):
        return None
    try:
        return int(float(v))
    except (TypeError, ValueError):
        return None


def read_table(filename: str, content: bytes) -> pd.DataFrame:
    buf = BytesIO(content)
    if (filename or "").lower().endswith(".csv"):
        df = pd.read_csv(buf, dtype=str)
    else:
        df = pd.read_excel(buf, dtype=object)
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    return df


@router.post("/import", response_model=ImportResultOut)
def import_schedules(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
    user: Profile = Depends(get_current_user),
):
    content = file.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file provided")
    if len(content) > settings.IMPORT_MAX_BYTES:
        raise HTTPException(status_code=400, detail="File size must be less than 10MB")

    try:
        df = read_table(file.filename, content)
    except Exception as e:
        logger.warning("Import file %s could not be parsed: %s", file.filename, e)
        raise HTTPException(status_code=400, detail={"error": "Cannot read file", "details": str(e)})

    missing = [c for c in REQUIRED_IMPORT_COLUMNS if c not in df.columns]
    if missing:
        raise HTTPException(status_code=400, detail={
            "error": "Missing required columns",
            "details": ", ".join(missing),
        })

    # 先把 periods / rooms / teachers 對照表準備好
    periods = {
        p.period_number: p
        for p in db.query(Period).filter(Period.school_id == school_id, Period.is_active.is_(True)).all()
    }
    rooms = {
        r.room_number: r
        for r in db.query(Room).filter(Room.school_id == school_id, Room.is_active.is_(True)).all()
    }
    emails = {to_str(v).lower() for v in df.get("teacher_email", pd.Series(dtype=object)) if to_str(v)}
    teachers = {}
    if emails:
        teachers = {
            t.email.lower(): t
            for t in db.query(Profile).filter(
                func.lower(Profile.email).in_(emails),
                Profile.role == "teacher",
                Profile.school_id == school_id,
            ).all()
        }

    accepted = []
    errors = []

    try:
        for i, row in df.iterrows():
            row_no = int(i) + 2  # 1-based + header

            try:
                subject = to_str(row.get("subject"))
                grade = to_str(row.get("grade"))
                if not subject or not grade:
                    raise AppError("subject and grade are required", error="Missing required fields")

                day = normalize_day(to_str(row.get("day_of_week")))
                if not day:
                    raise AppError("day_of_week is required", error="Missing required fields")

                period = None
                period_number = to_int(row.get("period_number"))
                if period_number is not None:
                    period = periods.get(period_number)
                    if period is None:
                        raise AppError(f"period {period_number} not found", error="Invalid period")
                    start, end = period.start_time, period.end_time
                else:
                    start = normalize_time(to_str(row.get("start_time")))
                    end = normalize_time(to_str(row.get("end_time")))
                    if not start or not end:
                        raise AppError(
                            "Either period_number or start_time and end_time must be provided",
                            error="Missing required fields",
                        )
                check_time_range(start, end)

                teacher = None
                email = to_str(row.get("teacher_email"))
                if email:
                    teacher = teachers.get(email.lower())
                    if teacher is None:
                        raise AppError(f"teacher {email} not found", error="Invalid teacher")

                room = None
                room_number = to_str(row.get("room_number"))
                if room_number:
                    room = rooms.get(room_number)
                    if room is None:
                        raise AppError(f"room {room_number} not found", error="Invalid room")

                # 也要跟本次已接受的列比對
                ensure_no_conflict(db, ScheduleCandidate(
                    school_id=school_id,
                    day_of_week=day,
                    start_time=start,
                    end_time=end,
                    teacher_id=teacher.id if teacher else None,
                    room_id=room.id if room else None,
                ), extra_rows=accepted)

            except AppError as e:
                errors.append(ImportRowError(row=row_no, error=e.error, details=str(e.details) if e.details else None))
                continue

            s = ClassSchedule(
                school_id=school_id,
                class_id=to_str(row.get("class_id")),
                teacher_id=teacher.id if teacher else None,
                subject=subject,
                grade=grade,
                day_of_week=day,
                period_id=period.id if period else None,
                room_id=room.id if room else None,
                start_time=start,
                end_time=end,
                academic_year=to_str(row.get("academic_year")) or settings.DEFAULT_ACADEMIC_YEAR,
                notes=to_str(row.get("notes")),
                created_by=user.id,
                is_active=True,
            )
            accepted.append(s)

        db.add_all(accepted)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Import into school %s: %d imported, %d skipped", school_id, len(accepted), len(errors))
    return ImportResultOut(
        message=f"Successfully imported {len(accepted)} schedules",
        imported=len(accepted),
        skipped=len(errors),
        errors=errors,
    )
