from pydantic import BaseModel


class StudentSummary(BaseModel):
    name: str
    student_id_number: str | None = None


class ClassDetails(BaseModel):
    name: str
    level: str | None = None


class NamedRef(BaseModel):
    name: str


class AssessmentResult(BaseModel):
    assessment_id: str
    assessment_name: str
    assessment_type: str
    subject_id: str
    subject_name: str
    marks_obtained: float | None = None
    max_marks: float
    percentage: float | None = None


class ExamResult(BaseModel):
    exam_id: str
    exam_name: str
    exam_weight: float | None = None
    assessments: list[AssessmentResult]
    exam_total_marks_obtained: float
    exam_total_max_marks: float
    exam_percentage: float | None = None
    weighted_contribution: float | None = None


class SubjectResult(BaseModel):
    subject_id: str
    subject_name: str
    marks_obtained: float
    max_marks: float
    percentage: float | None = None
    grade: str
    remarks: str
    points: float | None = None


class DivisionResult(BaseModel):
    division: str
    description: str | None = None
    total_points: float | None = None
    subjects_counted: int = 0


class ChartPoint(BaseModel):
    exam_name: str
    percentage: float | None = None


class TermReport(BaseModel):
    student: StudentSummary
    class_details: ClassDetails | None = None
    academic_year: NamedRef
    term: NamedRef
    exam_results: list[ExamResult]
    subject_results: list[SubjectResult]
    term_total_weighted_score: float | None = None
    term_overall_percentage: float | None = None
    term_grade: str
    term_remarks: str
    division: DivisionResult | None = None
    chart_data: list[ChartPoint]
    grading_scale_used: str | None = None


class ClassTermReportRow(BaseModel):
    student_id: str
    student_name: str
    total_marks_obtained: float
    total_max_marks: float
    average_percentage: float | None = None
    grade: str
    remarks: str
