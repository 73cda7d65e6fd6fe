import uuid
from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint
from school_admin.database import Base


class SchoolAdmin(Base):
    __tablename__ = "school_admins"
    __table_args__ = (
        UniqueConstraint("profile_id", "school_id", name="uq_school_admins_profile_school"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
