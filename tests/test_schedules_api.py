"""
School-admin schedule routes: tenant scoping, period-derived times and
conflict rejection.
"""
from school_admin.models.class_schedule import ClassSchedule
from school_admin.models.period import Period
from school_admin.models.school_admins import SchoolAdmin

from conftest import bearer, make_profile


def payload(**overrides):
    body = {
        "subject": "Mathematics",
        "grade": "10",
        "day_of_week": "Monday",
        "start_time": "09:00",
        "end_time": "10:00",
    }
    body.update(overrides)
    return body


# ---------- auth ----------

def test_requires_token(client):
    r = client.get("/school-admin/schedules")
    assert r.status_code == 401
    assert "error" in r.json()


def test_teacher_is_not_school_admin(client, teacher):
    r = client.get("/school-admin/schedules", headers=bearer(teacher))
    assert r.status_code == 401
    assert r.json() == {
        "error": "Unauthorized: School admin access required",
        "details": "Unable to determine school_id",
    }


def test_school_id_falls_back_to_profile(client, db, school):
    p = make_profile(db, "school_admin", "fallback@north.example", school_id=school.id)
    r = client.get("/school-admin/schedules", headers=bearer(p))
    assert r.status_code == 200
    assert r.json() == {"schedules": []}


def test_inactive_assignment_without_fallback_is_rejected(client, db, school):
    p = make_profile(db, "school_admin", "gone@north.example")
    db.add(SchoolAdmin(profile_id=p.id, school_id=school.id, is_active=False))
    db.commit()
    r = client.get("/school-admin/schedules", headers=bearer(p))
    assert r.status_code == 401


def test_invalid_token(client):
    r = client.get("/school-admin/schedules", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid authentication token"


# ---------- create ----------

def test_create_schedule(client, admin_headers, admin, school, teacher, room):
    r = client.post(
        "/school-admin/schedules",
        json=payload(teacher_id=teacher.id, room_id=room.id, day_of_week="mon", class_id=""),
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    s = r.json()["schedule"]
    assert s["school_id"] == school.id
    assert s["day_of_week"] == "Monday"
    assert s["start_time"] == "09:00:00"
    assert s["end_time"] == "10:00:00"
    assert s["class_id"] is None
    assert s["academic_year"] == "2024-25"
    assert s["created_by"] == admin.id
    assert s["teacher"]["id"] == teacher.id
    assert s["room"]["room_number"] == "101"
    assert s["is_active"] is True


def test_create_uses_period_times(client, admin_headers, period):
    r = client.post(
        "/school-admin/schedules",
        json=payload(start_time=None, end_time=None, period_id=period.id),
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    s = r.json()["schedule"]
    assert (s["start_time"], s["end_time"]) == ("09:00:00", "10:00:00")
    assert s["period"]["period_number"] == 1


def test_create_with_foreign_period_is_rejected(client, db, admin_headers, other_school):
    p = Period(school_id=other_school.id, period_number=1, start_time="08:00:00", end_time="09:00:00")
    db.add(p)
    db.commit()

    r = client.post("/school-admin/schedules", json=payload(period_id=p.id), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid period"


def test_create_requires_times(client, admin_headers):
    r = client.post(
        "/school-admin/schedules",
        json=payload(start_time=None, end_time=None),
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Missing required fields"


def test_create_rejects_bad_day(client, admin_headers):
    r = client.post("/school-admin/schedules", json=payload(day_of_week="Funday"), headers=admin_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Validation failed"
    assert "day_of_week" in body["details"]


def test_create_rejects_malformed_time(client, admin_headers):
    r = client.post("/school-admin/schedules", json=payload(start_time="9 o'clock"), headers=admin_headers)
    assert r.status_code == 400
    assert "start_time" in r.json()["details"]


def test_create_rejects_reversed_range(client, admin_headers):
    r = client.post(
        "/school-admin/schedules",
        json=payload(start_time="11:00", end_time="10:00"),
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid time range"


def test_create_rejects_unknown_room(client, admin_headers):
    r = client.post("/school-admin/schedules", json=payload(room_id="missing"), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "room_id not found"


def test_create_rejects_teacher_outside_school(client, db, admin, admin_headers, school, other_school):
    foreign = make_profile(db, "teacher", "t9@south.example", school_id=other_school.id)
    student = make_profile(db, "student", "kid@north.example", school_id=school.id)
    for teacher_id in (foreign.id, student.id, admin.id):
        r = client.post("/school-admin/schedules", json=payload(teacher_id=teacher_id), headers=admin_headers)
        assert r.status_code == 400, teacher_id
        assert r.json()["error"] == "teacher_id not found"

    r = client.get("/teacher/schedules", headers=bearer(foreign))
    assert r.json()["schedules"] == []


def test_create_rejects_inactive_room_and_period(client, db, admin_headers, room, period):
    room.is_active = False
    period.is_active = False
    db.commit()

    r = client.post("/school-admin/schedules", json=payload(room_id=room.id), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "room_id not found"

    r = client.post("/school-admin/schedules", json=payload(period_id=period.id), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid period"


def test_teacher_conflict_rejected(client, admin_headers, teacher, add_schedule):
    existing = add_schedule(start="09:30:00", end="10:30:00", teacher_id=teacher.id)
    r = client.post("/school-admin/schedules", json=payload(teacher_id=teacher.id), headers=admin_headers)
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "Schedule conflict"
    assert body["details"] == "Teacher already has a class scheduled at this time"
    assert body["conflicts"][0]["id"] == existing.id


def test_room_conflict_rejected(client, admin_headers, room, add_schedule):
    add_schedule(start="09:00:00", end="10:00:00", room_id=room.id)
    r = client.post("/school-admin/schedules", json=payload(room_id=room.id), headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["error"] == "Room conflict"


def test_touching_schedules_allowed(client, admin_headers, teacher, room, add_schedule):
    add_schedule(start="10:00:00", end="11:00:00", teacher_id=teacher.id, room_id=room.id)
    r = client.post(
        "/school-admin/schedules",
        json=payload(teacher_id=teacher.id, room_id=room.id),
        headers=admin_headers,
    )
    assert r.status_code == 201


def test_inactive_and_other_school_schedules_do_not_conflict(
    client, admin_headers, teacher, other_school, add_schedule,
):
    add_schedule(teacher_id=teacher.id, is_active=False)
    add_schedule(teacher_id=teacher.id, school_id=other_school.id)
    r = client.post("/school-admin/schedules", json=payload(teacher_id=teacher.id), headers=admin_headers)
    assert r.status_code == 201


# ---------- read ----------

def test_list_is_scoped_and_ordered(client, admin_headers, other_school, add_schedule):
    add_schedule(day="Wednesday", start="08:00:00", end="09:00:00")
    add_schedule(day="Monday", start="11:00:00", end="12:00:00")
    add_schedule(day="Monday", start="08:00:00", end="09:00:00")
    add_schedule(day="Monday", start="08:00:00", end="09:00:00", school_id=other_school.id)
    add_schedule(day="Tuesday", is_active=False)

    r = client.get("/school-admin/schedules", headers=admin_headers)
    assert r.status_code == 200
    got = [(s["day_of_week"], s["start_time"]) for s in r.json()["schedules"]]
    assert got == [("Monday", "08:00:00"), ("Monday", "11:00:00"), ("Wednesday", "08:00:00")]


def test_list_filters(client, admin_headers, teacher, add_schedule):
    add_schedule(day="Monday", teacher_id=teacher.id)
    add_schedule(day="Tuesday")

    r = client.get("/school-admin/schedules", params={"day": "Mon"}, headers=admin_headers)
    assert len(r.json()["schedules"]) == 1

    r = client.get("/school-admin/schedules", params={"teacher_id": teacher.id}, headers=admin_headers)
    assert [s["teacher_id"] for s in r.json()["schedules"]] == [teacher.id]


def test_get_schedule_scoping(client, admin_headers, other_school, add_schedule):
    mine = add_schedule()
    theirs = add_schedule(school_id=other_school.id)

    assert client.get(f"/school-admin/schedules/{mine.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/school-admin/schedules/{theirs.id}", headers=admin_headers).status_code == 403
    r = client.get("/school-admin/schedules/nope", headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"error": "Schedule not found"}


# ---------- update ----------

def test_update_same_times_does_not_conflict_with_itself(client, admin_headers, teacher, add_schedule):
    s = add_schedule(teacher_id=teacher.id)
    r = client.put(
        f"/school-admin/schedules/{s.id}",
        json={"start_time": "09:00", "end_time": "10:00", "teacher_id": teacher.id},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text


def test_update_into_conflict_rejected(client, admin_headers, teacher, add_schedule):
    add_schedule(start="10:00:00", end="11:00:00", teacher_id=teacher.id)
    s = add_schedule(start="08:00:00", end="09:00:00", teacher_id=teacher.id)

    r = client.put(f"/school-admin/schedules/{s.id}", json={"end_time": "10:30"}, headers=admin_headers)
    assert r.status_code == 409

    # boundary touch is fine
    r = client.put(f"/school-admin/schedules/{s.id}", json={"end_time": "10:00"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["schedule"]["end_time"] == "10:00:00"


def test_update_falls_back_to_stored_values(client, admin_headers, teacher2, add_schedule):
    s = add_schedule(day="Friday", start="13:00:00", end="14:00:00")
    r = client.put(
        f"/school-admin/schedules/{s.id}",
        json={"notes": "bring calculators", "teacher_id": teacher2.id},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()["schedule"]
    assert body["day_of_week"] == "Friday"
    assert body["start_time"] == "13:00:00"
    assert body["notes"] == "bring calculators"
    assert body["teacher_id"] == teacher2.id


def test_update_unrelated_field_skips_conflict_check(client, db, admin_headers, teacher, add_schedule):
    a = add_schedule(teacher_id=teacher.id)
    add_schedule(start="09:30:00", end="10:30:00", teacher_id=teacher.id)  # legacy overlap

    r = client.put(f"/school-admin/schedules/{a.id}", json={"subject": "Algebra"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["schedule"]["subject"] == "Algebra"


def test_reactivation_is_conflict_checked(client, admin_headers, teacher, add_schedule):
    old = add_schedule(teacher_id=teacher.id, is_active=False)
    add_schedule(teacher_id=teacher.id)

    r = client.put(f"/school-admin/schedules/{old.id}", json={"is_active": True}, headers=admin_headers)
    assert r.status_code == 409


def test_update_rejects_unknown_fields(client, admin_headers, add_schedule):
    s = add_schedule()
    r = client.put(f"/school-admin/schedules/{s.id}", json={"colour": "red"}, headers=admin_headers)
    assert r.status_code == 400


def test_update_other_school_forbidden(client, admin_headers, other_school, add_schedule):
    s = add_schedule(school_id=other_school.id)
    r = client.put(f"/school-admin/schedules/{s.id}", json={"notes": "x"}, headers=admin_headers)
    assert r.status_code == 403


# ---------- delete ----------

def test_delete_is_soft(client, db, admin_headers, add_schedule):
    s = add_schedule()
    r = client.delete(f"/school-admin/schedules/{s.id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Schedule deleted successfully"}

    db.expire_all()
    row = db.query(ClassSchedule).filter(ClassSchedule.id == s.id).first()
    assert row is not None
    assert row.is_active is False

    r = client.get("/school-admin/schedules", headers=admin_headers)
    assert r.json()["schedules"] == []


def test_deleted_schedule_frees_the_slot(client, admin_headers, teacher, add_schedule):
    s = add_schedule(teacher_id=teacher.id)
    client.delete(f"/school-admin/schedules/{s.id}", headers=admin_headers)
    r = client.post("/school-admin/schedules", json=payload(teacher_id=teacher.id), headers=admin_headers)
    assert r.status_code == 201


# ---------- conflict endpoints ----------

def test_check_conflicts_dry_run(client, admin_headers, teacher, room, add_schedule):
    e = add_schedule(start="09:30:00", end="10:30:00", teacher_id=teacher.id)
    r = client.post(
        "/school-admin/schedules/check-conflicts",
        json={"day_of_week": "Mon", "start_time": "09:00", "end_time": "10:00",
              "teacher_id": teacher.id, "room_id": room.id},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["has_conflict"] is True
    assert body["teacher_conflict"] is True
    assert [c["id"] for c in body["teacher_conflicts"]] == [e.id]
    assert body["room_conflict"] is False

    r = client.post(
        "/school-admin/schedules/check-conflicts",
        json={"day_of_week": "Monday", "start_time": "09:00", "end_time": "10:00",
              "teacher_id": teacher.id, "exclude_id": e.id},
        headers=admin_headers,
    )
    assert r.json()["has_conflict"] is False


def test_conflict_report(client, admin_headers, teacher, room, add_schedule):
    add_schedule(start="09:00:00", end="10:00:00", teacher_id=teacher.id)
    add_schedule(start="09:30:00", end="10:30:00", teacher_id=teacher.id, room_id=room.id)
    add_schedule(start="10:00:00", end="11:00:00", room_id=room.id)

    r = client.get("/school-admin/schedules/conflicts", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["total_conflicts"] == 2
    assert body["conflicts_by_type"] == {"teacher_double_booking": 1, "room_double_booking": 1}


def test_teacher_timetable(client, teacher, add_schedule):
    add_schedule(day="Tuesday", start="08:00:00", end="09:00:00", teacher_id=teacher.id)
    add_schedule(day="Monday", start="10:00:00", end="11:00:00", teacher_id=teacher.id)
    add_schedule(day="Monday", start="12:00:00", end="13:00:00", teacher_id=teacher.id, is_active=False)
    add_schedule(day="Monday", start="08:00:00", end="09:00:00")

    r = client.get("/teacher/schedules", headers=bearer(teacher))
    assert r.status_code == 200
    body = r.json()
    assert [(s["day_of_week"], s["start_time"]) for s in body["schedules"]] == [
        ("Monday", "10:00:00"), ("Tuesday", "08:00:00"),
    ]
    assert len(body["grid"]["Monday"]) == 1
    assert body["grid"]["Sunday"] == []


def test_teacher_timetable_requires_teacher_role(client, admin_headers):
    r = client.get("/teacher/schedules", headers=admin_headers)
    assert r.status_code == 403
