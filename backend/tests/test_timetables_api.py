from conftest import auth_headers
from portal.api.routes import timetables


def period(subject_id, teacher_id=None, day="Monday", start="09:00", end="10:00", location=None):
    return {
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
        "subject_id": subject_id,
        "teacher_id": teacher_id,
        "location": location,
    }


def timetable_payload(school, school_class, name, periods, is_active=True):
    return {
        "name": name,
        "academic_year_id": school.year.id,
        "class_id": school_class.id,
        "term_id": school.term.id,
        "periods": periods,
        "is_active": is_active,
    }


def create_timetable(client, school, school_class, name, periods, is_active=True):
    return client.post(
        "/api/timetables",
        json=timetable_payload(school, school_class, name, periods, is_active),
        headers=auth_headers(school.admin),
    )


def test_create_timetable_returns_ordered_periods(client, school):
    response = create_timetable(
        client,
        school,
        school.form_one,
        "Form 1A main",
        [
            period(school.maths.id, school.teacher_a.id, start="08:00", end="09:00"),
            period(school.physics.id, school.teacher_b.id, start="09:00", end="10:00", location=" Lab 1 "),
        ],
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["is_active"] is True
    assert payload["version"] == 1
    assert [p["start_time"] for p in payload["periods"]] == ["08:00", "09:00"]
    assert payload["periods"][1]["location"] == "Lab 1"


def test_teacher_double_booking_is_rejected(client, school):
    first = create_timetable(client, school, school.form_two, "Form 2A main", [period(school.maths.id, school.teacher_a.id)])
    assert first.status_code == 201

    response = create_timetable(
        client,
        school,
        school.form_one,
        "Form 1A main",
        [period(school.physics.id, school.teacher_a.id, start="09:30", end="10:30")],
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert "Grace Hopper" in detail
    assert "Form 2A" in detail
    assert "09:00-10:00" in detail


def test_location_double_booking_is_rejected(client, school):
    create_timetable(
        client, school, school.form_two, "Form 2A main", [period(school.maths.id, school.teacher_a.id, location="Lab 1")]
    )

    response = create_timetable(
        client,
        school,
        school.form_one,
        "Form 1A main",
        [period(school.physics.id, school.teacher_b.id, location="LAB 1")],
    )

    assert response.status_code == 409
    assert "Lab 1" in response.json()["detail"]


def test_overlapping_periods_in_one_timetable_are_rejected(client, school):
    response = create_timetable(
        client,
        school,
        school.form_one,
        "Form 1A main",
        [
            period(school.maths.id, school.teacher_a.id, start="09:00", end="10:00"),
            period(school.physics.id, school.teacher_b.id, start="09:45", end="10:30"),
        ],
    )

    assert response.status_code == 409
    assert "Periods overlap on Monday" in response.json()["detail"]


def test_inactive_timetables_do_not_block(client, school):
    draft = create_timetable(
        client, school, school.form_two, "Form 2A draft", [period(school.maths.id, school.teacher_a.id)], is_active=False
    )
    assert draft.status_code == 201

    response = create_timetable(client, school, school.form_one, "Form 1A main", [period(school.physics.id, school.teacher_a.id)])

    assert response.status_code == 201


def test_check_conflicts_reports_without_saving(client, school):
    create_timetable(client, school, school.form_two, "Form 2A main", [period(school.maths.id, school.teacher_a.id)])
    payload = timetable_payload(school, school.form_one, "draft", [period(school.physics.id, school.teacher_a.id)])

    response = client.post("/api/timetables/check-conflicts", json=payload, headers=auth_headers(school.admin))

    assert response.status_code == 200
    result = response.json()
    assert result["has_conflict"] is True
    assert result["conflict"]["conflict_type"] == "teacher_conflict"
    assert result["conflict"]["day_of_week"] == "Monday"

    listed = client.get("/api/timetables", params={"class_id": school.form_one.id}, headers=auth_headers(school.admin))
    assert listed.json() == []


def test_activating_a_timetable_retires_the_previous_one(client, school):
    old = create_timetable(client, school, school.form_one, "Form 1A v1", [period(school.maths.id, school.teacher_a.id)])
    new = create_timetable(client, school, school.form_one, "Form 1A v2", [period(school.maths.id, school.teacher_a.id)])
    assert new.status_code == 201

    refreshed = client.get(f"/api/timetables/{old.json()['id']}", headers=auth_headers(school.admin))

    assert refreshed.json()["is_active"] is False


def test_update_bumps_version_and_excludes_itself(client, school):
    created = create_timetable(client, school, school.form_one, "Form 1A main", [period(school.maths.id, school.teacher_a.id)])
    timetable_id = created.json()["id"]

    payload = timetable_payload(
        school,
        school.form_one,
        "Form 1A main",
        [period(school.maths.id, school.teacher_a.id, start="09:30", end="10:30")],
    )
    response = client.put(f"/api/timetables/{timetable_id}", json=payload, headers=auth_headers(school.admin))

    assert response.status_code == 200
    assert response.json()["version"] == 2
    assert response.json()["periods"][0]["start_time"] == "09:30"


def test_copy_creates_inactive_duplicate(client, school):
    source = create_timetable(
        client,
        school,
        school.form_one,
        "Form 1A main",
        [period(school.maths.id, school.teacher_a.id), period(school.physics.id, school.teacher_b.id, day="Tuesday")],
    )

    response = client.post(
        f"/api/timetables/{source.json()['id']}/copy",
        json={"name": "Form 1A next term", "description": "Rolled over"},
        headers=auth_headers(school.admin),
    )

    assert response.status_code == 201
    copy = response.json()
    assert copy["is_active"] is False
    assert copy["description"] == "Rolled over"
    assert [(p["day_of_week"], p["subject_id"]) for p in copy["periods"]] == [
        ("Monday", school.maths.id),
        ("Tuesday", school.physics.id),
    ]


def test_duplicate_name_is_rejected(client, school):
    create_timetable(client, school, school.form_one, "Form 1A main", [], is_active=False)

    response = create_timetable(client, school, school.form_one, "Form 1A main", [], is_active=False)

    assert response.status_code == 409


def test_malformed_period_times_fail_validation(client, school):
    response = create_timetable(
        client, school, school.form_one, "Form 1A main", [period(school.maths.id, start="9:00", end="10:00")]
    )

    assert response.status_code == 422


def test_unknown_subject_is_rejected(client, school):
    response = create_timetable(client, school, school.form_one, "Form 1A main", [period("missing-subject")])

    assert response.status_code == 400
    assert "missing-subject" in response.json()["detail"]


def test_only_admins_manage_timetables(client, school):
    response = create_timetable(client, school, school.form_one, "Form 1A main", [])
    assert response.status_code == 201

    forbidden = client.post(
        "/api/timetables",
        json=timetable_payload(school, school.form_two, "Form 2A main", []),
        headers=auth_headers(school.teacher_a),
    )
    assert forbidden.status_code == 403

    listed = client.get("/api/timetables", headers=auth_headers(school.student_user))
    assert listed.status_code == 200
    assert len(listed.json()) == 1


def test_copy_rejects_blank_name(client, school):
    source = create_timetable(client, school, school.form_one, "Form 1A main", [period(school.maths.id)])

    response = client.post(
        f"/api/timetables/{source.json()['id']}/copy",
        json={"name": "   "},
        headers=auth_headers(school.admin),
    )

    assert response.status_code == 422


def test_update_name_clash_at_commit_returns_conflict(client, school, monkeypatch):
    create_timetable(client, school, school.form_one, "Form 1A main", [], is_active=False)
    draft = create_timetable(client, school, school.form_one, "Form 1A draft", [], is_active=False)
    monkeypatch.setattr(timetables, "_ensure_unique_name", lambda db, **kwargs: None)

    response = client.put(
        f"/api/timetables/{draft.json()['id']}",
        json=timetable_payload(school, school.form_one, "Form 1A main", [], is_active=False),
        headers=auth_headers(school.admin),
    )

    assert response.status_code == 409
    listed = client.get("/api/timetables", params={"class_id": school.form_one.id}, headers=auth_headers(school.admin))
    assert sorted(item["name"] for item in listed.json()) == ["Form 1A draft", "Form 1A main"]
