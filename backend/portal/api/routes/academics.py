from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from portal.api.deps import get_current_user, get_db, require_roles
from portal.models.academic_year import AcademicYear, Term
from portal.models.school_class import SchoolClass
from portal.models.subject import Subject
from portal.models.user import User, UserRole
from portal.schemas.academics import (
    AcademicYearCreate,
    AcademicYearOut,
    SchoolClassCreate,
    SchoolClassOut,
    SubjectCreate,
    SubjectOut,
    TermCreate,
    TermOut,
)

router = APIRouter()


@router.get("/academic-years", response_model=list[AcademicYearOut])
def list_academic_years(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AcademicYearOut]:
    return list(db.execute(select(AcademicYear).order_by(AcademicYear.start_date.desc())).scalars())


@router.post("/academic-years", response_model=AcademicYearOut, status_code=status.HTTP_201_CREATED)
def create_academic_year(
    payload: AcademicYearCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    existing = db.execute(select(AcademicYear).where(AcademicYear.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Academic year already exists")
    if payload.is_current:
        db.execute(update(AcademicYear).where(AcademicYear.is_current.is_(True)).values(is_current=False))
    year = AcademicYear(**payload.model_dump())
    db.add(year)
    db.commit()
    db.refresh(year)
    return year


@router.get("/terms", response_model=list[TermOut])
def list_terms(
    academic_year_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TermOut]:
    query = select(Term).order_by(Term.start_date)
    if academic_year_id:
        query = query.where(Term.academic_year_id == academic_year_id)
    return list(db.execute(query).scalars())


@router.post("/terms", response_model=TermOut, status_code=status.HTTP_201_CREATED)
def create_term(
    payload: TermCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> TermOut:
    if db.get(AcademicYear, payload.academic_year_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic year not found")
    existing = db.execute(
        select(Term).where(Term.academic_year_id == payload.academic_year_id, Term.name == payload.name)
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Term already exists for this academic year")
    term = Term(**payload.model_dump())
    db.add(term)
    db.commit()
    db.refresh(term)
    return term


@router.get("/classes", response_model=list[SchoolClassOut])
def list_classes(
    academic_year_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[SchoolClassOut]:
    query = select(SchoolClass).order_by(SchoolClass.name)
    if academic_year_id:
        query = query.where(SchoolClass.academic_year_id == academic_year_id)
    return list(db.execute(query).scalars())


@router.post("/classes", response_model=SchoolClassOut, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: SchoolClassCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> SchoolClassOut:
    if db.get(AcademicYear, payload.academic_year_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic year not found")
    existing = db.execute(
        select(SchoolClass).where(
            SchoolClass.academic_year_id == payload.academic_year_id,
            SchoolClass.name == payload.name,
        )
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class already exists for this academic year")
    school_class = SchoolClass(**payload.model_dump())
    db.add(school_class)
    db.commit()
    db.refresh(school_class)
    return school_class


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[SubjectOut]:
    return list(db.execute(select(Subject).order_by(Subject.name)).scalars())


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> SubjectOut:
    existing = db.execute(select(Subject).where(Subject.code == payload.code)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject code already exists")
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject
