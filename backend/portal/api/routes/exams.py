from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.api.deps import get_current_user, get_db, require_roles
from portal.models.academic_year import AcademicYear, Term
from portal.models.exam import Assessment, Exam, ExamStatus
from portal.models.school_class import SchoolClass
from portal.models.subject import Subject
from portal.models.user import User, UserRole
from portal.schemas.exam import AssessmentCreate, AssessmentOut, ExamCreate, ExamOut, ExamUpdate

router = APIRouter()


def _get_exam(db: Session, exam_id: str) -> Exam:
    exam = db.get(Exam, exam_id)
    if exam is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return exam


@router.get("/exams", response_model=list[ExamOut])
def list_exams(
    academic_year_id: str | None = Query(default=None),
    term_id: str | None = Query(default=None),
    exam_status: ExamStatus | None = Query(default=None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ExamOut]:
    query = select(Exam).order_by(Exam.start_date.desc())
    if academic_year_id:
        query = query.where(Exam.academic_year_id == academic_year_id)
    if term_id:
        query = query.where(Exam.term_id == term_id)
    if exam_status is not None:
        query = query.where(Exam.status == exam_status)
    return list(db.execute(query).scalars())


@router.post("/exams", response_model=ExamOut, status_code=status.HTTP_201_CREATED)
def create_exam(
    payload: ExamCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ExamOut:
    if db.get(AcademicYear, payload.academic_year_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic year not found")
    if payload.term_id is not None and db.get(Term, payload.term_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Term not found")
    existing = db.execute(
        select(Exam).where(
            Exam.name == payload.name,
            Exam.academic_year_id == payload.academic_year_id,
            Exam.term_id.is_(None) if payload.term_id is None else Exam.term_id == payload.term_id,
        )
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Exam already exists for this academic year and term")
    exam = Exam(**payload.model_dump())
    db.add(exam)
    db.commit()
    db.refresh(exam)
    return exam


@router.put("/exams/{exam_id}", response_model=ExamOut)
def update_exam(
    exam_id: str,
    payload: ExamUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ExamOut:
    exam = _get_exam(db, exam_id)
    data = payload.model_dump(exclude_unset=True)
    start_date = data.get("start_date", exam.start_date)
    end_date = data.get("end_date", exam.end_date)
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date cannot be before start_date")
    for key, value in data.items():
        setattr(exam, key, value)
    db.commit()
    db.refresh(exam)
    return exam


@router.get("/exams/{exam_id}/assessments", response_model=list[AssessmentOut])
def list_assessments(
    exam_id: str,
    class_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AssessmentOut]:
    _get_exam(db, exam_id)
    query = select(Assessment).where(Assessment.exam_id == exam_id).order_by(Assessment.assessment_date)
    if class_id:
        query = query.where(Assessment.class_id == class_id)
    return list(db.execute(query).scalars())


@router.post("/exams/{exam_id}/assessments", response_model=AssessmentOut, status_code=status.HTTP_201_CREATED)
def create_assessment(
    exam_id: str,
    payload: AssessmentCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> AssessmentOut:
    _get_exam(db, exam_id)
    if db.get(Subject, payload.subject_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    if db.get(SchoolClass, payload.class_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    existing = db.execute(
        select(Assessment).where(
            Assessment.exam_id == exam_id,
            Assessment.class_id == payload.class_id,
            Assessment.subject_id == payload.subject_id,
            Assessment.assessment_name == payload.assessment_name,
        )
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Assessment already exists for this exam, class and subject")
    assessment = Assessment(exam_id=exam_id, **payload.model_dump())
    db.add(assessment)
    db.commit()
    db.refresh(assessment)
    return assessment
