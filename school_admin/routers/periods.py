from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_admin.database import get_db
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.period import Period
from school_admin.routers.schedules import commit_or_400
from school_admin.schemas.period import PeriodCreate, PeriodUpdate, PeriodOut, PeriodEnvelope, PeriodListOut
from school_admin.utils.auth import get_school_id
from school_admin.utils.timeslots import check_time_range

import logging
logger = logging.getLogger("school_admin.periods")


router = APIRouter(prefix="/school-admin/periods", tags=["School Admin - Periods"])


def _get_owned_period(db: Session, period_id: str, school_id: str) -> Period:
    p = db.query(Period).filter(Period.id == period_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Period not found")
    if p.school_id != school_id:
        raise HTTPException(status_code=403, detail="Unauthorized: Period does not belong to your school")
    return p


def _number_taken(db: Session, school_id: str, number: int, exclude_id=None) -> bool:
    q = db.query(Period.id).filter(Period.school_id == school_id, Period.period_number == number)
    if exclude_id:
        q = q.filter(Period.id != exclude_id)
    return q.first() is not None


@router.get("", response_model=PeriodListOut)
def list_periods(db: Session = Depends(get_db), school_id: str = Depends(get_school_id)):
    rows = (
        db.query(Period)
        .filter(Period.school_id == school_id, Period.is_active.is_(True))
        .order_by(Period.period_number.asc())
        .all()
    )
    return PeriodListOut(periods=[PeriodOut.model_validate(p) for p in rows])


@router.post("", response_model=PeriodEnvelope, status_code=201)
def create_period(
    body: PeriodCreate,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    if _number_taken(db, school_id, body.period_number):
        raise HTTPException(status_code=400, detail={
            "error": "Period number already exists",
            "details": f"Period {body.period_number} is already defined for this school",
        })

    p = Period(
        school_id=school_id,
        period_number=body.period_number,
        start_time=body.start_time,
        end_time=body.end_time,
        is_active=True,
    )
    db.add(p)
    commit_or_400(db)
    db.refresh(p)
    return PeriodEnvelope(period=PeriodOut.model_validate(p))


@router.put("/{period_id}", response_model=PeriodEnvelope)
def update_period(
    period_id: str,
    body: PeriodUpdate,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    p = _get_owned_period(db, period_id, school_id)
    data = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}

    if "period_number" in data and _number_taken(db, school_id, data["period_number"], exclude_id=p.id):
        raise HTTPException(status_code=400, detail="Period number already exists")

    check_time_range(data.get("start_time", p.start_time), data.get("end_time", p.end_time))

    for k, v in data.items():
        setattr(p, k, v)

    # 已排課程的時間不會自動跟著改，只記 log
    if "start_time" in data or "end_time" in data:
        linked = (
            db.query(ClassSchedule.id)
            .filter(ClassSchedule.period_id == p.id, ClassSchedule.is_active.is_(True))
            .count()
        )
        if linked:
            logger.warning("Period %s times changed; %d active schedules keep their stored times", p.id, linked)

    commit_or_400(db)
    db.refresh(p)
    return PeriodEnvelope(period=PeriodOut.model_validate(p))


@router.delete("/{period_id}")
def delete_period(
    period_id: str,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    p = _get_owned_period(db, period_id, school_id)

    in_use = (
        db.query(ClassSchedule.id)
        .filter(ClassSchedule.period_id == p.id, ClassSchedule.is_active.is_(True))
        .first()
    )
    if in_use:
        raise HTTPException(status_code=400, detail={
            "error": "Cannot delete period",
            "details": "Period is assigned to active schedules. Please remove assignments first.",
        })

    # 停用的課表仍指向此 period，先解除關聯
    db.query(ClassSchedule).filter(ClassSchedule.period_id == p.id).update(
        {ClassSchedule.period_id: None}, synchronize_session=False
    )
    db.delete(p)
    commit_or_400(db)
    return {"message": "Period deleted successfully"}
