from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional

class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    full_name: Optional[str] = None
    role: str
    school_id: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
