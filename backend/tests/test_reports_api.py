import pytest

from conftest import add_user, auth_headers
from portal.models import Student, UserRole

GRADES = [
    {"grade": "A", "min_score": 80, "max_score": 100, "remarks": "Excellent", "points": 1},
    {"grade": "B", "min_score": 60, "max_score": 79.99, "remarks": "Very Good", "points": 2},
    {"grade": "C", "min_score": 40, "max_score": 59.99, "remarks": "Good", "points": 3},
    {"grade": "F", "min_score": 0, "max_score": 39.99, "remarks": "Fail", "points": 5},
]


def create_exam(client, school, name, status="Published", weight=None):
    response = client.post(
        "/api/exams",
        json={
            "name": name,
            "academic_year_id": school.year.id,
            "term_id": school.term.id,
            "start_date": "2026-03-02",
            "end_date": "2026-03-06",
            "status": status,
            "weight": weight,
        },
        headers=auth_headers(school.admin),
    )
    assert response.status_code == 201
    return response.json()


def create_assessment(client, school, exam_id, subject, name="Paper 1", max_marks=100):
    response = client.post(
        f"/api/exams/{exam_id}/assessments",
        json={
            "subject_id": subject.id,
            "class_id": school.form_one.id,
            "assessment_type": "Theory",
            "assessment_name": name,
            "max_marks": max_marks,
            "assessment_date": "2026-03-03",
        },
        headers=auth_headers(school.admin),
    )
    assert response.status_code == 201
    return response.json()


def record_marks(client, school, assessment_id, marks):
    return client.post(
        "/api/marks/batch",
        json={
            "assessment_id": assessment_id,
            "marks": [{"student_id": student_id, "marks_obtained": value} for student_id, value in marks],
            "mark_assessment_graded": True,
        },
        headers=auth_headers(school.teacher_a),
    )


def create_scale(client, school, **overrides):
    payload = {"name": "Standard", "grades": GRADES, "is_default": True}
    payload.update(overrides)
    response = client.post("/api/grading-scales", json=payload, headers=auth_headers(school.admin))
    assert response.status_code == 201
    return response.json()


def term_report(client, school, student_id=None, user=None):
    return client.get(
        f"/api/reports/term-report/student/{student_id or school.student.id}",
        params={"academic_year_id": school.year.id, "term_id": school.term.id},
        headers=auth_headers(user or school.teacher_a),
    )


def test_term_report_rolls_up_published_exams(client, school):
    create_scale(client, school)
    exam = create_exam(client, school, "Midterm")
    maths = create_assessment(client, school, exam["id"], school.maths)
    physics = create_assessment(client, school, exam["id"], school.physics)
    assert record_marks(client, school, maths["id"], [(school.student_user.id, 80)]).status_code == 200
    assert record_marks(client, school, physics["id"], [(school.student_user.id, 60)]).status_code == 200
    create_exam(client, school, "Mock", status="Scheduled")

    response = term_report(client, school)

    assert response.status_code == 200
    report = response.json()
    assert report["student"] == {"name": "Amina Juma", "student_id_number": "S-001"}
    assert report["class_details"] == {"name": "Form 1A", "level": "O-Level"}
    assert report["academic_year"]["name"] == "2026"
    assert report["term"]["name"] == "Term 1"
    assert [exam["exam_name"] for exam in report["exam_results"]] == ["Midterm"]
    assert report["exam_results"][0]["exam_percentage"] == pytest.approx(70.0)
    assert report["term_overall_percentage"] == pytest.approx(70.0)
    assert report["term_grade"] == "B"
    assert report["term_remarks"] == "Very Good"
    assert report["grading_scale_used"] == "Standard"
    assert {subject["subject_name"]: subject["grade"] for subject in report["subject_results"]} == {
        "Mathematics": "A",
        "Physics": "B",
    }


def test_term_report_weights_exams(client, school):
    create_scale(client, school)
    midterm = create_exam(client, school, "Midterm", weight=40)
    final = create_exam(client, school, "Final", weight=60)
    first = create_assessment(client, school, midterm["id"], school.maths)
    second = create_assessment(client, school, final["id"], school.maths)
    record_marks(client, school, first["id"], [(school.student_user.id, 80)])
    record_marks(client, school, second["id"], [(school.student_user.id, 50)])

    report = term_report(client, school).json()

    assert report["term_total_weighted_score"] == pytest.approx(62.0)
    assert report["term_overall_percentage"] == pytest.approx(62.0)
    assert report["term_grade"] == "B"


def test_term_report_without_exams_is_not_applicable(client, school):
    response = term_report(client, school)

    assert response.status_code == 200
    report = response.json()
    assert report["exam_results"] == []
    assert report["term_overall_percentage"] is None
    assert report["term_grade"] == "N/A"


def test_term_report_prefers_level_scale(client, school):
    create_scale(client, school, name="Year general", academic_year_id=school.year.id)
    create_scale(
        client,
        school,
        name="O-Level",
        academic_year_id=school.year.id,
        level="O-Level",
        is_default=False,
        grades=[{"grade": "PASS", "min_score": 50, "max_score": 100, "remarks": "Pass"}],
    )
    exam = create_exam(client, school, "Midterm")
    assessment = create_assessment(client, school, exam["id"], school.maths)
    record_marks(client, school, assessment["id"], [(school.student_user.id, 55)])

    report = term_report(client, school).json()

    assert report["grading_scale_used"] == "O-Level"
    assert report["term_grade"] == "PASS"


def test_term_report_unknown_student_is_404(client, school):
    response = term_report(client, school, student_id="missing")

    assert response.status_code == 404
    assert response.json()["details"]["resource_type"] == "Student"


def test_students_cannot_read_term_reports(client, school):
    assert term_report(client, school, user=school.student_user).status_code == 403


def test_class_term_report_lists_active_students(client, school, db_session):
    create_scale(client, school)
    second_user = add_user(db_session, "Baraka", "Mushi", UserRole.student)
    db_session.add(
        Student(
            user_id=second_user.id,
            student_id_number="S-002",
            current_class_id=school.form_one.id,
            current_academic_year_id=school.year.id,
        )
    )
    db_session.commit()

    exam = create_exam(client, school, "Midterm")
    assessment = create_assessment(client, school, exam["id"], school.maths, max_marks=50)
    record_marks(client, school, assessment["id"], [(school.student_user.id, 45), (second_user.id, 10)])

    response = client.get(
        "/api/reports/class-term-report",
        params={"academic_year_id": school.year.id, "class_id": school.form_one.id},
        headers=auth_headers(school.admin),
    )

    assert response.status_code == 200
    rows = {row["student_name"]: row for row in response.json()}
    assert rows["Amina Juma"]["average_percentage"] == pytest.approx(90.0)
    assert rows["Amina Juma"]["grade"] == "A"
    assert rows["Baraka Mushi"]["average_percentage"] == pytest.approx(20.0)
    assert rows["Baraka Mushi"]["grade"] == "F"


def test_marks_above_maximum_are_rejected(client, school):
    exam = create_exam(client, school, "Midterm")
    assessment = create_assessment(client, school, exam["id"], school.maths, max_marks=50)

    response = record_marks(client, school, assessment["id"], [(school.student_user.id, 51)])

    assert response.status_code == 400


def test_marks_are_upserted(client, school):
    exam = create_exam(client, school, "Midterm")
    assessment = create_assessment(client, school, exam["id"], school.maths)

    first = record_marks(client, school, assessment["id"], [(school.student_user.id, 40)])
    second = record_marks(client, school, assessment["id"], [(school.student_user.id, 65)])

    assert first.json()["created"] == 1
    assert second.json()["updated"] == 1
    listed = client.get(f"/api/marks/assessment/{assessment['id']}", headers=auth_headers(school.teacher_a))
    assert [mark["marks_obtained"] for mark in listed.json()] == [65]


def test_grading_scale_rejects_inverted_range(client, school):
    response = client.post(
        "/api/grading-scales",
        json={"name": "Broken", "grades": [{"grade": "A", "min_score": 90, "max_score": 80}]},
        headers=auth_headers(school.admin),
    )

    assert response.status_code == 422


def test_grading_scale_names_are_unique(client, school):
    create_scale(client, school)

    response = client.post(
        "/api/grading-scales",
        json={"name": "Standard", "grades": GRADES},
        headers=auth_headers(school.admin),
    )

    assert response.status_code == 409


@pytest.mark.parametrize("field", ["name", "start_date", "end_date", "status"])
def test_exam_update_rejects_null_required_fields(client, school, field):
    exam = create_exam(client, school, "Midterm")

    response = client.put(f"/api/exams/{exam['id']}", json={field: None}, headers=auth_headers(school.admin))

    assert response.status_code == 422


def test_exam_update_accepts_clearing_weight(client, school):
    exam = create_exam(client, school, "Midterm", weight=40)

    response = client.put(f"/api/exams/{exam['id']}", json={"weight": None}, headers=auth_headers(school.admin))

    assert response.status_code == 200
    assert response.json()["weight"] is None


@pytest.mark.parametrize("payload", [{"name": None}, {"name": "  "}, {"grades": None}, {"is_default": None}])
def test_grading_scale_update_rejects_null_or_blank(client, school, payload):
    scale = create_scale(client, school)

    response = client.put(f"/api/grading-scales/{scale['id']}", json=payload, headers=auth_headers(school.admin))

    assert response.status_code == 422
