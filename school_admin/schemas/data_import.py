from typing import List, Optional
from pydantic import BaseModel


class ImportRowError(BaseModel):
    row: int
    error: str
    details: Optional[str] = None


class ImportResultOut(BaseModel):
    message: str
    imported: int
    skipped: int
    errors: List[ImportRowError] = []
