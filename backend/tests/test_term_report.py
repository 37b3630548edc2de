import pytest

from portal.core.exceptions import InvalidInputError, ResourceNotFoundError
from portal.services.grading import GradingScaleRecord
from portal.services.term_report import (
    AssessmentRecord,
    ClassRecord,
    ExamRecord,
    MarkRecord,
    ScoredMark,
    StudentRecord,
    build_class_term_report,
    build_term_report,
)

GRADES = [
    {"grade": "A", "min_score": 80, "max_score": 100, "remarks": "Excellent", "points": 1},
    {"grade": "B", "min_score": 60, "max_score": 79.99, "remarks": "Very Good", "points": 2},
    {"grade": "C", "min_score": 40, "max_score": 59.99, "remarks": "Good", "points": 3},
    {"grade": "F", "min_score": 0, "max_score": 39.99, "remarks": "Fail", "points": 5},
]


class FakeSources:
    """In-memory stand-in for the database-backed report sources."""

    def __init__(self, exams=(), assessments=(), marks=None, scales=(), level="O-Level"):
        self.student = StudentRecord(id="st1", name="Amina Juma", student_id_number="S-001", class_name="Form 1A", class_level=level)
        self.exams = list(exams)
        self.assessments = list(assessments)
        self.marks = marks or {}
        self.scales = list(scales)
        self.level = level
        self.classes = {"c1": ClassRecord(id="c1", name="Form 1A", level=level)}
        self.class_students = []
        self.scored_marks = []

    def get_student(self, student_id):
        return self.student if student_id == "st1" else None

    def get_academic_year_name(self, academic_year_id):
        return "2026" if academic_year_id == "y1" else None

    def get_term_name(self, term_id):
        return "Term 1" if term_id == "t1" else None

    def list_published_exams(self, academic_year_id, term_id):
        return self.exams

    def list_assessments(self, exam_id):
        return [a for a in self.assessments if a.exam_id == exam_id]

    def get_student_mark(self, assessment_id, student_id):
        if assessment_id not in self.marks:
            return None
        return MarkRecord(assessment_id=assessment_id, student_id=student_id, marks_obtained=self.marks[assessment_id])

    def get_student_class_level(self, student_id):
        return self.level

    def resolve_grading_scale(self, criteria):
        for scale in self.scales:
            if scale.academic_year_id != criteria.academic_year_id or scale.level != criteria.level:
                continue
            if criteria.default_only and not scale.is_default:
                continue
            return scale
        return None

    def get_class(self, class_id):
        return self.classes.get(class_id)

    def list_class_students(self, class_id, academic_year_id):
        return self.class_students

    def list_scored_marks(self, student_ids, academic_year_id):
        return [mark for mark in self.scored_marks if mark.student_id in student_ids]


def assessment(assessment_id, exam_id, max_marks=100, subject_id="maths", subject_name="Mathematics"):
    return AssessmentRecord(
        id=assessment_id,
        exam_id=exam_id,
        subject_id=subject_id,
        subject_name=subject_name,
        assessment_name=f"Paper {assessment_id}",
        assessment_type="Theory",
        max_marks=max_marks,
    )


def scale(name="Default", **kwargs):
    return GradingScaleRecord.from_payload(name=name, grades=kwargs.pop("grades", GRADES), **kwargs)


def test_unweighted_exam_percentage():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[assessment("a1", "e1"), assessment("a2", "e1", subject_id="phy", subject_name="Physics")],
        marks={"a1": 80, "a2": 60},
        scales=[scale(is_default=True)],
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.exam_results[0].exam_percentage == pytest.approx(70.0)
    assert report.exam_results[0].weighted_contribution is None
    assert report.term_overall_percentage == pytest.approx(70.0)
    assert report.term_total_weighted_score is None
    assert report.term_grade == "B"
    assert report.chart_data[0].exam_name == "Midterm"
    assert report.chart_data[0].percentage == pytest.approx(70.0)


def test_weighted_exams_are_renormalised():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm", weight=40), ExamRecord(id="e2", name="Final", weight=60)],
        assessments=[assessment("a1", "e1"), assessment("a2", "e2")],
        marks={"a1": 80, "a2": 50},
        scales=[scale(is_default=True)],
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.exam_results[0].weighted_contribution == pytest.approx(32.0)
    assert report.exam_results[1].weighted_contribution == pytest.approx(30.0)
    assert report.term_total_weighted_score == pytest.approx(62.0)
    assert report.term_overall_percentage == pytest.approx(62.0)


def test_weights_need_not_sum_to_hundred():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Quiz", weight=10), ExamRecord(id="e2", name="Test", weight=30)],
        assessments=[assessment("a1", "e1"), assessment("a2", "e2")],
        marks={"a1": 100, "a2": 60},
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.term_overall_percentage == pytest.approx((100 * 10 + 60 * 30) / 40)


def test_unmarked_assessment_is_excluded_not_zero():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[assessment("a1", "e1", max_marks=50), assessment("a2", "e1", max_marks=50)],
        marks={"a2": 40},
    )

    report = build_term_report("st1", "y1", "t1", sources)
    exam = report.exam_results[0]

    assert exam.exam_percentage == pytest.approx(80.0)
    assert exam.exam_total_max_marks == 50
    assert exam.assessments[0].marks_obtained is None
    assert exam.assessments[0].percentage is None
    assert exam.assessments[1].percentage == pytest.approx(80.0)


def test_mark_without_score_is_excluded():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[assessment("a1", "e1"), assessment("a2", "e1")],
        marks={"a1": None, "a2": 90},
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.exam_results[0].exam_percentage == pytest.approx(90.0)


def test_exam_without_marks_is_left_out_of_both_paths():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm", weight=50), ExamRecord(id="e2", name="Final", weight=50)],
        assessments=[assessment("a1", "e1"), assessment("a2", "e2")],
        marks={"a1": 70},
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.exam_results[1].exam_percentage is None
    assert report.exam_results[1].weighted_contribution is None
    assert report.term_overall_percentage == pytest.approx(70.0)
    assert report.chart_data[1].percentage is None


def test_mixed_weighted_and_unweighted_exams_use_weighted_path():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm", weight=40), ExamRecord(id="e2", name="Project")],
        assessments=[assessment("a1", "e1"), assessment("a2", "e2")],
        marks={"a1": 50, "a2": 100},
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.term_overall_percentage == pytest.approx(50.0)


def test_zero_weights_fall_back_to_mean():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm", weight=0), ExamRecord(id="e2", name="Final", weight=0)],
        assessments=[assessment("a1", "e1"), assessment("a2", "e2")],
        marks={"a1": 50, "a2": 100},
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.term_overall_percentage == pytest.approx(75.0)


def test_no_published_exams_returns_not_applicable():
    report = build_term_report("st1", "y1", "t1", FakeSources(scales=[scale(is_default=True)]))

    assert report.exam_results == []
    assert report.term_overall_percentage is None
    assert report.term_grade == "N/A"
    assert report.term_remarks.startswith("N/A")
    assert report.grading_scale_used == "Default"


def test_boundary_percentage_maps_to_grade():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[assessment("a1", "e1")],
        marks={"a1": 80},
        scales=[scale(is_default=True)],
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.term_grade == "A"
    assert report.term_remarks == "Excellent"


def test_most_specific_scale_is_used():
    strict = [{"grade": "PASS", "min_score": 70, "max_score": 100, "remarks": "Pass"}]
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[assessment("a1", "e1")],
        marks={"a1": 75},
        scales=[
            scale("Global", is_default=True),
            scale("Year general", academic_year_id="y1", is_default=True),
            scale("Year O-Level", academic_year_id="y1", level="O-Level", grades=strict),
        ],
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.grading_scale_used == "Year O-Level"
    assert report.term_grade == "PASS"


def test_missing_scale_degrades_to_not_applicable():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[assessment("a1", "e1")],
        marks={"a1": 75},
    )

    report = build_term_report("st1", "y1", "t1", sources)

    assert report.term_overall_percentage == pytest.approx(75.0)
    assert report.term_grade == "N/A"
    assert report.grading_scale_used is None


def test_subject_results_roll_up_across_exams():
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm"), ExamRecord(id="e2", name="Final")],
        assessments=[
            assessment("a1", "e1"),
            assessment("a2", "e2"),
            assessment("a3", "e2", max_marks=50, subject_id="phy", subject_name="Physics"),
        ],
        marks={"a1": 90, "a2": 70, "a3": 15},
        scales=[scale(is_default=True)],
    )

    report = build_term_report("st1", "y1", "t1", sources)
    subjects = {result.subject_name: result for result in report.subject_results}

    assert subjects["Mathematics"].marks_obtained == 160
    assert subjects["Mathematics"].max_marks == 200
    assert subjects["Mathematics"].grade == "A"
    assert subjects["Physics"].percentage == pytest.approx(30.0)
    assert subjects["Physics"].grade == "F"
    assert subjects["Physics"].points == 5


def test_o_level_division_from_subject_points():
    divisions = [
        {"division": "I", "min_points": 2, "max_points": 3, "description": "Excellent"},
        {"division": "II", "min_points": 4, "max_points": 6, "description": "Very Good"},
    ]
    sources = FakeSources(
        exams=[ExamRecord(id="e1", name="Midterm")],
        assessments=[
            assessment("a1", "e1"),
            assessment("a2", "e1", subject_id="phy", subject_name="Physics"),
            assessment("a3", "e1", subject_id="bio", subject_name="Biology"),
        ],
        marks={"a1": 90, "a2": 85, "a3": 20},
        scales=[scale("O-Level", is_default=True, scale_type="O-Level Division Points", division_configs=divisions)],
    )

    report = build_term_report("st1", "y1", "t1", sources, division_best_subjects=2)

    assert report.division.division == "I"
    assert report.division.total_points == 2
    assert report.division.subjects_counted == 2


def test_report_header_details():
    report = build_term_report("st1", "y1", "t1", FakeSources())

    assert report.student.name == "Amina Juma"
    assert report.student.student_id_number == "S-001"
    assert report.class_details.name == "Form 1A"
    assert report.class_details.level == "O-Level"
    assert report.academic_year.name == "2026"
    assert report.term.name == "Term 1"
    assert report.division is None


@pytest.mark.parametrize(
    "student_id,year_id,term_id,resource",
    [("missing", "y1", "t1", "Student"), ("st1", "missing", "t1", "AcademicYear"), ("st1", "y1", "missing", "Term")],
)
def test_missing_scope_raises_not_found(student_id, year_id, term_id, resource):
    with pytest.raises(ResourceNotFoundError) as excinfo:
        build_term_report(student_id, year_id, term_id, FakeSources())

    assert excinfo.value.status_code == 404
    assert excinfo.value.details["resource_type"] == resource


def test_blank_identifiers_raise_invalid_input():
    with pytest.raises(InvalidInputError):
        build_term_report("st1", "", "t1", FakeSources())


def test_class_term_report_totals_and_grades():
    sources = FakeSources(scales=[scale(is_default=True)])
    sources.class_students = [
        StudentRecord(id="st1", name="Amina Juma"),
        StudentRecord(id="st2", name="Baraka Mushi"),
        StudentRecord(id="st3", name="Neema Said"),
    ]
    sources.scored_marks = [
        ScoredMark(student_id="st1", marks_obtained=45, max_marks=50),
        ScoredMark(student_id="st1", marks_obtained=35, max_marks=50),
        ScoredMark(student_id="st2", marks_obtained=None, max_marks=100),
        ScoredMark(student_id="st2", marks_obtained=30, max_marks=100),
    ]

    rows = build_class_term_report("c1", "y1", sources)
    by_student = {row.student_id: row for row in rows}

    assert by_student["st1"].average_percentage == pytest.approx(80.0)
    assert by_student["st1"].grade == "A"
    assert by_student["st2"].total_max_marks == 100
    assert by_student["st2"].grade == "F"
    assert by_student["st3"].average_percentage is None
    assert by_student["st3"].grade == "N/A"


def test_class_term_report_unknown_class():
    with pytest.raises(ResourceNotFoundError):
        build_class_term_report("nope", "y1", FakeSources())
