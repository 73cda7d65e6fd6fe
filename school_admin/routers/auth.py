from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from school_admin.database import get_db
from school_admin.models.profile import Profile
from school_admin.schemas.profile import ProfileOut, TokenOut
from school_admin.utils.auth import create_access_token, get_current_user
from school_admin.utils.hashing import verify_password

import logging
logger = logging.getLogger("school_admin.auth")


router = APIRouter(prefix="/auth", tags=["Auth"])


# 登入（username 欄位填 email）
@router.post("/login", response_model=TokenOut)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    email = form_data.username.strip().lower()
    user = db.query(Profile).filter(Profile.email == email).first()
    if not user or not verify_password(form_data.password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise HTTPException(status_code=403, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    token = create_access_token({"sub": user.id, "role": user.role})
    return TokenOut(access_token=token)


# 取得使用者資料
@router.get("/me", response_model=ProfileOut)
def get_me(current_user: Profile = Depends(get_current_user)):
    return ProfileOut.model_validate(current_user)
