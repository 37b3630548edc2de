from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from portal.models.academic_year import AcademicYear, Term
from portal.models.exam import Assessment, Exam, ExamStatus
from portal.models.grading_scale import GradingScale
from portal.models.mark import Mark
from portal.models.school_class import SchoolClass
from portal.models.student import Student
from portal.models.subject import Subject
from portal.models.user import User
from portal.services.grading import GradingScaleCriteria, GradingScaleRecord
from portal.services.term_report import (
    AssessmentRecord,
    ClassRecord,
    ExamRecord,
    MarkRecord,
    ScoredMark,
    StudentRecord,
)


def grading_scale_record(scale: GradingScale) -> GradingScaleRecord:
    return GradingScaleRecord.from_payload(
        name=scale.name,
        grades=scale.grades or [],
        division_configs=scale.division_configs or [],
        academic_year_id=scale.academic_year_id,
        level=scale.level,
        is_default=scale.is_default,
        scale_type=scale.scale_type,
    )


class SqlReportSources:
    """Report collaborators backed by the tenant database.

    Student ids are profile ids; marks are stored against the student's user
    account, so lookups translate between the two.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self._user_ids: dict[str, str | None] = {}

    def _student_user_id(self, student_id: str) -> str | None:
        if student_id not in self._user_ids:
            profile = self.db.get(Student, student_id)
            self._user_ids[student_id] = profile.user_id if profile is not None else None
        return self._user_ids[student_id]

    def get_student(self, student_id: str) -> StudentRecord | None:
        profile = self.db.get(Student, student_id)
        if profile is None or profile.user is None:
            return None
        self._user_ids[student_id] = profile.user_id
        current_class = profile.current_class
        return StudentRecord(
            id=profile.id,
            name=profile.user.full_name,
            student_id_number=profile.student_id_number,
            class_name=current_class.name if current_class is not None else None,
            class_level=current_class.level if current_class is not None else None,
        )

    def get_academic_year_name(self, academic_year_id: str) -> str | None:
        year = self.db.get(AcademicYear, academic_year_id)
        return year.name if year is not None else None

    def get_term_name(self, term_id: str) -> str | None:
        term = self.db.get(Term, term_id)
        return term.name if term is not None else None

    def list_published_exams(self, academic_year_id: str, term_id: str) -> Sequence[ExamRecord]:
        query = (
            select(Exam)
            .where(
                Exam.academic_year_id == academic_year_id,
                Exam.term_id == term_id,
                Exam.status == ExamStatus.published,
            )
            .order_by(Exam.start_date, Exam.name)
        )
        return [ExamRecord(id=exam.id, name=exam.name, weight=exam.weight) for exam in self.db.execute(query).scalars()]

    def list_assessments(self, exam_id: str) -> Sequence[AssessmentRecord]:
        query = (
            select(Assessment, Subject.name)
            .join(Subject, Subject.id == Assessment.subject_id, isouter=True)
            .where(Assessment.exam_id == exam_id)
            .order_by(Assessment.assessment_date, Assessment.assessment_name)
        )
        return [
            AssessmentRecord(
                id=assessment.id,
                exam_id=assessment.exam_id,
                subject_id=assessment.subject_id,
                subject_name=subject_name or "N/A",
                assessment_name=assessment.assessment_name,
                assessment_type=assessment.assessment_type,
                max_marks=assessment.max_marks,
            )
            for assessment, subject_name in self.db.execute(query).all()
        ]

    def get_student_mark(self, assessment_id: str, student_id: str) -> MarkRecord | None:
        user_id = self._student_user_id(student_id)
        if user_id is None:
            return None
        mark = self.db.execute(
            select(Mark).where(Mark.assessment_id == assessment_id, Mark.student_id == user_id)
        ).scalar_one_or_none()
        if mark is None:
            return None
        return MarkRecord(
            assessment_id=mark.assessment_id,
            student_id=student_id,
            marks_obtained=mark.marks_obtained,
            comments=mark.comments,
        )

    def get_student_class_level(self, student_id: str) -> str | None:
        profile = self.db.get(Student, student_id)
        if profile is None or profile.current_class is None:
            return None
        return profile.current_class.level

    def resolve_grading_scale(self, criteria: GradingScaleCriteria) -> GradingScaleRecord | None:
        query = select(GradingScale)
        if criteria.academic_year_id is None:
            query = query.where(GradingScale.academic_year_id.is_(None))
        else:
            query = query.where(GradingScale.academic_year_id == criteria.academic_year_id)
        if criteria.level is None:
            query = query.where(or_(GradingScale.level.is_(None), GradingScale.level == ""))
        else:
            query = query.where(GradingScale.level == criteria.level)
        if criteria.default_only:
            query = query.where(GradingScale.is_default.is_(True))
        scale = self.db.execute(query.order_by(GradingScale.created_at, GradingScale.name).limit(1)).scalar_one_or_none()
        return grading_scale_record(scale) if scale is not None else None

    def get_class(self, class_id: str) -> ClassRecord | None:
        school_class = self.db.get(SchoolClass, class_id)
        if school_class is None:
            return None
        return ClassRecord(id=school_class.id, name=school_class.name, level=school_class.level)

    def list_class_students(self, class_id: str, academic_year_id: str) -> Sequence[StudentRecord]:
        query = (
            select(Student, User)
            .join(User, User.id == Student.user_id)
            .where(
                Student.current_class_id == class_id,
                Student.current_academic_year_id == academic_year_id,
                Student.is_active.is_(True),
            )
            .order_by(User.last_name, User.first_name)
        )
        records: list[StudentRecord] = []
        for profile, user in self.db.execute(query).all():
            self._user_ids[profile.id] = user.id
            records.append(
                StudentRecord(id=profile.id, name=user.full_name, student_id_number=profile.student_id_number)
            )
        return records

    def list_scored_marks(self, student_ids: Sequence[str], academic_year_id: str) -> Sequence[ScoredMark]:
        profile_by_user = {
            self._student_user_id(student_id): student_id for student_id in student_ids
        }
        profile_by_user.pop(None, None)
        if not profile_by_user:
            return []
        query = (
            select(Mark.student_id, Mark.marks_obtained, Assessment.max_marks)
            .join(Assessment, Assessment.id == Mark.assessment_id)
            .where(Mark.student_id.in_(list(profile_by_user)), Mark.academic_year_id == academic_year_id)
        )
        return [
            ScoredMark(student_id=profile_by_user[user_id], marks_obtained=obtained, max_marks=max_marks)
            for user_id, obtained, max_marks in self.db.execute(query).all()
        ]
