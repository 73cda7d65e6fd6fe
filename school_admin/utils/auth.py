import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from fastapi import HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from school_admin.config import settings
from school_admin.database import get_db
from school_admin.models.profile import Profile
from school_admin.models.school_admins import SchoolAdmin

logger = logging.getLogger("school_admin.auth")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

SCHOOL_ADMIN_REQUIRED = {
    "error": "Unauthorized: School admin access required",
    "details": "Unable to determine school_id",
}


def create_access_token(data: dict, expires_minutes: Optional[int] = None):
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode.update({"exp": expire})
    token = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    profile_id = payload.get("sub")
    if profile_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.query(Profile).filter(Profile.id == profile_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def resolve_school_id(db: Session, user: Profile) -> Optional[str]:
    """
    school_admin 的 school_id：
    1. school_admins 中 active 的那一筆（主要來源）
    2. profiles.school_id（備援）
    """
    if getattr(user, "role", None) != "school_admin":
        return None

    row = (
        db.query(SchoolAdmin.school_id)
        .filter(SchoolAdmin.profile_id == user.id, SchoolAdmin.is_active.is_(True))
        .first()
    )
    if row:
        return row[0]

    if user.school_id:
        logger.warning("No active school_admins row for %s, falling back to profiles.school_id", user.id)
        return user.school_id
    return None


def get_school_id(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)) -> str:
    school_id = resolve_school_id(db, user)
    if not school_id:
        raise HTTPException(status_code=401, detail=SCHOOL_ADMIN_REQUIRED)
    return school_id


def require_teacher(user: Profile = Depends(get_current_user)):
    if getattr(user, "role", None) != "teacher":
        raise HTTPException(status_code=403, detail="Teacher only")
    return user
