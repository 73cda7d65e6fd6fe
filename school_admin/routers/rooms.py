from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_admin.database import get_db
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.room import Room
from school_admin.routers.schedules import commit_or_400
from school_admin.schemas.room import RoomCreate, RoomUpdate, RoomOut, RoomEnvelope, RoomListOut
from school_admin.utils.auth import get_school_id


router = APIRouter(prefix="/school-admin/rooms", tags=["School Admin - Rooms"])


def _get_owned_room(db: Session, room_id: str, school_id: str) -> Room:
    r = db.query(Room).filter(Room.id == room_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="Room not found")
    if r.school_id != school_id:
        raise HTTPException(status_code=403, detail="Unauthorized: Room does not belong to your school")
    return r


@router.get("", response_model=RoomListOut)
def list_rooms(db: Session = Depends(get_db), school_id: str = Depends(get_school_id)):
    rows = (
        db.query(Room)
        .filter(Room.school_id == school_id, Room.is_active.is_(True))
        .order_by(Room.room_number.asc())
        .all()
    )
    return RoomListOut(rooms=[RoomOut.model_validate(r) for r in rows])


@router.post("", response_model=RoomEnvelope, status_code=201)
def create_room(
    body: RoomCreate,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    room_number = body.room_number.strip()
    if db.query(Room.id).filter(Room.school_id == school_id, Room.room_number == room_number).first():
        raise HTTPException(status_code=400, detail="Room number already exists")

    r = Room(
        school_id=school_id,
        room_number=room_number,
        room_name=body.room_name,
        capacity=body.capacity,
        location=body.location,
        is_active=True,
    )
    db.add(r)
    commit_or_400(db)
    db.refresh(r)
    return RoomEnvelope(room=RoomOut.model_validate(r))


@router.put("/{room_id}", response_model=RoomEnvelope)
def update_room(
    room_id: str,
    body: RoomUpdate,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    r = _get_owned_room(db, room_id, school_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("room_number"):
        data["room_number"] = data["room_number"].strip()
        taken = (
            db.query(Room.id)
            .filter(Room.school_id == school_id, Room.room_number == data["room_number"], Room.id != r.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=400, detail="Room number already exists")

    for k, v in data.items():
        if k in ("room_number", "is_active") and v is None:
            continue
        setattr(r, k, v)

    commit_or_400(db)
    db.refresh(r)
    return RoomEnvelope(room=RoomOut.model_validate(r))


@router.delete("/{room_id}")
def delete_room(
    room_id: str,
    db: Session = Depends(get_db),
    school_id: str = Depends(get_school_id),
):
    r = _get_owned_room(db, room_id, school_id)

    in_use = (
        db.query(ClassSchedule.id)
        .filter(ClassSchedule.room_id == r.id, ClassSchedule.is_active.is_(True))
        .first()
    )
    if in_use:
        raise HTTPException(status_code=400, detail={
            "error": "Cannot delete room",
            "details": "Room is assigned to active schedules. Please remove assignments first.",
        })

    db.query(ClassSchedule).filter(ClassSchedule.room_id == r.id).update(
        {ClassSchedule.room_id: None}, synchronize_session=False
    )
    db.delete(r)
    commit_or_400(db)
    return {"message": "Room deleted successfully"}
