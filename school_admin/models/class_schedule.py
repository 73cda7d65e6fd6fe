import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from school_admin.database import Base


class ClassSchedule(Base):
    __tablename__ = "class_schedules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(String(36), nullable=True, index=True)
    teacher_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)

    subject = Column(String(100), nullable=False)
    grade = Column(String(50), nullable=False)

    # Monday .. Sunday
    day_of_week = Column(String(10), nullable=False, index=True)

    period_id = Column(String(36), ForeignKey("periods.id", ondelete="CASCADE"), nullable=True, index=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True, index=True)

    # HH:MM:SS，字串比較即時間先後
    start_time = Column(String(8), nullable=False)
    end_time = Column(String(8), nullable=False)

    academic_year = Column(String(20), nullable=False, default="2024-25")
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # relationship
    teacher = relationship("Profile", foreign_keys=[teacher_id])
    period = relationship("Period")
    room = relationship("Room")
