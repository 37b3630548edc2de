"""Term report aggregation.

Marks are rolled up per assessment, per subject and per exam; exam percentages
are combined into a weighted term score and mapped to a grade on the most
specific grading scale available. Everything is read-only: the data comes in
through a ``TermReportSources`` implementation and the report is never stored.

An assessment counts towards a total only when the student has a score for it,
so a term that is still being graded reports on what has been marked so far.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from portal.core.exceptions import InvalidInputError, ResourceNotFoundError
from portal.schemas.report import (
    AssessmentResult,
    ChartPoint,
    ClassDetails,
    ClassTermReportRow,
    DivisionResult,
    ExamResult,
    NamedRef,
    StudentSummary,
    SubjectResult,
    TermReport,
)
from portal.services.grading import (
    GradingScaleCriteria,
    GradingScaleRecord,
    apply_grading_scale,
    determine_division,
    resolve_grading_scale,
)

logger = logging.getLogger(__name__)

DEFAULT_DIVISION_BEST_SUBJECTS = 7


@dataclass(frozen=True)
class StudentRecord:
    id: str
    name: str
    student_id_number: str | None = None
    class_name: str | None = None
    class_level: str | None = None


@dataclass(frozen=True)
class ExamRecord:
    id: str
    name: str
    weight: float | None = None


@dataclass(frozen=True)
class AssessmentRecord:
    id: str
    exam_id: str
    subject_id: str
    subject_name: str
    assessment_name: str
    assessment_type: str
    max_marks: float


@dataclass(frozen=True)
class MarkRecord:
    assessment_id: str
    student_id: str
    marks_obtained: float | None = None
    comments: str | None = None


@dataclass(frozen=True)
class ClassRecord:
    id: str
    name: str
    level: str | None = None


@dataclass(frozen=True)
class ScoredMark:
    """A student's mark joined with the assessment's maximum."""

    student_id: str
    marks_obtained: float | None
    max_marks: float


class TermReportSources(Protocol):
    def get_student(self, student_id: str) -> StudentRecord | None: ...

    def get_academic_year_name(self, academic_year_id: str) -> str | None: ...

    def get_term_name(self, term_id: str) -> str | None: ...

    def list_published_exams(self, academic_year_id: str, term_id: str) -> Sequence[ExamRecord]: ...

    def list_assessments(self, exam_id: str) -> Sequence[AssessmentRecord]: ...

    def get_student_mark(self, assessment_id: str, student_id: str) -> MarkRecord | None: ...

    def get_student_class_level(self, student_id: str) -> str | None: ...

    def resolve_grading_scale(self, criteria: GradingScaleCriteria) -> GradingScaleRecord | None: ...


class ClassReportSources(Protocol):
    def get_class(self, class_id: str) -> ClassRecord | None: ...

    def get_academic_year_name(self, academic_year_id: str) -> str | None: ...

    def list_class_students(self, class_id: str, academic_year_id: str) -> Sequence[StudentRecord]: ...

    def list_scored_marks(self, student_ids: Sequence[str], academic_year_id: str) -> Sequence[ScoredMark]: ...

    def resolve_grading_scale(self, criteria: GradingScaleCriteria) -> GradingScaleRecord | None: ...


def _percentage(obtained: float, maximum: float) -> float | None:
    if maximum <= 0:
        return None
    return obtained / maximum * 100


class _Tally:
    __slots__ = ("obtained", "maximum")

    def __init__(self) -> None:
        self.obtained = 0.0
        self.maximum = 0.0

    def add(self, obtained: float, maximum: float) -> None:
        self.obtained += obtained
        self.maximum += maximum

    @property
    def percentage(self) -> float | None:
        return _percentage(self.obtained, self.maximum)


def _require(value: str | None, label: str) -> str:
    if not value or not str(value).strip():
        raise InvalidInputError(f"{label} is required")
    return value


def build_term_report(
    student_id: str,
    academic_year_id: str,
    term_id: str,
    sources: TermReportSources,
    *,
    division_best_subjects: int = DEFAULT_DIVISION_BEST_SUBJECTS,
) -> TermReport:
    _require(student_id, "student_id")
    _require(academic_year_id, "academic_year_id")
    _require(term_id, "term_id")

    student = sources.get_student(student_id)
    if student is None:
        raise ResourceNotFoundError("Student", student_id)
    year_name = sources.get_academic_year_name(academic_year_id)
    if year_name is None:
        raise ResourceNotFoundError("AcademicYear", academic_year_id)
    term_name = sources.get_term_name(term_id)
    if term_name is None:
        raise ResourceNotFoundError("Term", term_id)

    total_weighted_score = 0.0
    total_possible_weight = 0.0
    exam_results: list[ExamResult] = []
    chart_data: list[ChartPoint] = []
    subject_tallies: dict[str, _Tally] = {}
    subject_names: dict[str, str] = {}

    for exam in sources.list_published_exams(academic_year_id, term_id):
        exam_tally = _Tally()
        assessment_results: list[AssessmentResult] = []

        for assessment in sources.list_assessments(exam.id):
            mark = sources.get_student_mark(assessment.id, student_id)
            obtained = mark.marks_obtained if mark is not None else None
            if obtained is not None:
                exam_tally.add(obtained, assessment.max_marks)
                subject_names.setdefault(assessment.subject_id, assessment.subject_name)
                subject_tallies.setdefault(assessment.subject_id, _Tally()).add(obtained, assessment.max_marks)
            assessment_results.append(
                AssessmentResult(
                    assessment_id=assessment.id,
                    assessment_name=assessment.assessment_name,
                    assessment_type=assessment.assessment_type,
                    subject_id=assessment.subject_id,
                    subject_name=assessment.subject_name,
                    marks_obtained=obtained,
                    max_marks=assessment.max_marks,
                    percentage=_percentage(obtained, assessment.max_marks) if obtained is not None else None,
                )
            )

        exam_percentage = exam_tally.percentage
        weighted_contribution = None
        if exam.weight is not None and exam_percentage is not None:
            weighted_contribution = exam_percentage * exam.weight / 100
            total_weighted_score += weighted_contribution
            total_possible_weight += exam.weight

        exam_results.append(
            ExamResult(
                exam_id=exam.id,
                exam_name=exam.name,
                exam_weight=exam.weight,
                assessments=assessment_results,
                exam_total_marks_obtained=exam_tally.obtained,
                exam_total_max_marks=exam_tally.maximum,
                exam_percentage=exam_percentage,
                weighted_contribution=weighted_contribution,
            )
        )
        chart_data.append(ChartPoint(exam_name=exam.name, percentage=exam_percentage))

    term_percentage: float | None = None
    if total_possible_weight > 0:
        # Renormalise so the weights need not add up to 100.
        term_percentage = total_weighted_score / total_possible_weight * 100
    else:
        scored = [result.exam_percentage for result in exam_results if result.exam_percentage is not None]
        if scored:
            term_percentage = sum(scored) / len(scored)

    level = sources.get_student_class_level(student_id)
    scale = resolve_grading_scale(sources.resolve_grading_scale, academic_year_id, level)
    term_outcome = apply_grading_scale(term_percentage, scale)

    subject_results: list[SubjectResult] = []
    for subject_id, tally in subject_tallies.items():
        outcome = apply_grading_scale(tally.percentage, scale)
        subject_results.append(
            SubjectResult(
                subject_id=subject_id,
                subject_name=subject_names[subject_id],
                marks_obtained=tally.obtained,
                max_marks=tally.maximum,
                percentage=tally.percentage,
                grade=outcome.grade,
                remarks=outcome.remarks,
                points=outcome.points,
            )
        )

    division = None
    if scale is not None and scale.division_configs:
        outcome = determine_division(
            (result.points for result in subject_results if result.points is not None),
            scale,
            division_best_subjects,
        )
        division = DivisionResult(
            division=outcome.division,
            description=outcome.description,
            total_points=outcome.total_points,
            subjects_counted=outcome.subjects_counted,
        )

    logger.info(
        "Built term report for student %s (year %s, term %s): %d exams, overall %s",
        student_id,
        academic_year_id,
        term_id,
        len(exam_results),
        "n/a" if term_percentage is None else f"{term_percentage:.2f}%",
    )

    return TermReport(
        student=StudentSummary(name=student.name, student_id_number=student.student_id_number),
        class_details=ClassDetails(name=student.class_name, level=student.class_level) if student.class_name else None,
        academic_year=NamedRef(name=year_name),
        term=NamedRef(name=term_name),
        exam_results=exam_results,
        subject_results=subject_results,
        term_total_weighted_score=total_weighted_score if total_possible_weight > 0 else None,
        term_overall_percentage=term_percentage,
        term_grade=term_outcome.grade,
        term_remarks=term_outcome.remarks,
        division=division,
        chart_data=chart_data,
        grading_scale_used=scale.name if scale is not None else None,
    )


def build_class_term_report(class_id: str, academic_year_id: str, sources: ClassReportSources) -> list[ClassTermReportRow]:
    """Year-to-date totals for every active student in a class, graded on the class level's scale."""
    _require(class_id, "class_id")
    _require(academic_year_id, "academic_year_id")

    school_class = sources.get_class(class_id)
    if school_class is None:
        raise ResourceNotFoundError("Class", class_id)
    if sources.get_academic_year_name(academic_year_id) is None:
        raise ResourceNotFoundError("AcademicYear", academic_year_id)

    students = sources.list_class_students(class_id, academic_year_id)
    if not students:
        return []

    tallies: dict[str, _Tally] = {student.id: _Tally() for student in students}
    for mark in sources.list_scored_marks([student.id for student in students], academic_year_id):
        if mark.marks_obtained is None or mark.student_id not in tallies:
            continue
        tallies[mark.student_id].add(mark.marks_obtained, mark.max_marks)

    scale = resolve_grading_scale(sources.resolve_grading_scale, academic_year_id, school_class.level)
    rows: list[ClassTermReportRow] = []
    for student in students:
        tally = tallies[student.id]
        outcome = apply_grading_scale(tally.percentage, scale)
        rows.append(
            ClassTermReportRow(
                student_id=student.id,
                student_name=student.name,
                total_marks_obtained=tally.obtained,
                total_max_marks=tally.maximum,
                average_percentage=tally.percentage,
                grade=outcome.grade,
                remarks=outcome.remarks,
            )
        )
    return rows
