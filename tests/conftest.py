"""
Shared fixtures: in-memory sqlite, two schools, a school admin per school,
a teacher and bearer headers.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "school_admin_test_logs")

import pytest
from fastapi.testclient import TestClient

from school_admin.database import Base, SessionLocal, engine
from school_admin.main import app
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.period import Period
from school_admin.models.profile import Profile
from school_admin.models.room import Room
from school_admin.models.school import School
from school_admin.models.school_admins import SchoolAdmin
from school_admin.utils.auth import create_access_token


@pytest.fixture(autouse=True)
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_profile(db, role, email, school_id=None, password_hash="not-a-hash", is_active=True):
    p = Profile(
        email=email,
        full_name=email.split("@")[0].title(),
        password_hash=password_hash,
        role=role,
        school_id=school_id,
        is_active=is_active,
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def bearer(profile):
    return {"Authorization": f"Bearer {create_access_token({'sub': profile.id, 'role': profile.role})}"}


@pytest.fixture
def school(db):
    s = School(name="Northside High")
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


@pytest.fixture
def other_school(db):
    s = School(name="Southside High")
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


@pytest.fixture
def admin(db, school):
    p = make_profile(db, "school_admin", "admin@north.example")
    db.add(SchoolAdmin(profile_id=p.id, school_id=school.id, is_active=True))
    db.commit()
    return p


@pytest.fixture
def other_admin(db, other_school):
    p = make_profile(db, "school_admin", "admin@south.example")
    db.add(SchoolAdmin(profile_id=p.id, school_id=other_school.id, is_active=True))
    db.commit()
    return p


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def teacher(db, school):
    return make_profile(db, "teacher", "t1@north.example", school_id=school.id)


@pytest.fixture
def teacher2(db, school):
    return make_profile(db, "teacher", "t2@north.example", school_id=school.id)


@pytest.fixture
def room(db, school):
    r = Room(school_id=school.id, room_number="101", room_name="Lab A", capacity=30)
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


@pytest.fixture
def period(db, school):
    p = Period(school_id=school.id, period_number=1, start_time="09:00:00", end_time="10:00:00")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def add_schedule(db, school):
    def _add(day="Monday", start="09:00:00", end="10:00:00", teacher_id=None, room_id=None,
             school_id=None, is_active=True, subject="Math", period_id=None):
        s = ClassSchedule(
            school_id=school_id or school.id,
            teacher_id=teacher_id,
            room_id=room_id,
            period_id=period_id,
            subject=subject,
            grade="10",
            day_of_week=day,
            start_time=start,
            end_time=end,
            is_active=is_active,
        )
        db.add(s)
        db.commit()
        db.refresh(s)
        return s
    return _add
