from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from portal.api.deps import get_db, require_roles, require_staff
from portal.models.school_class import SchoolClass
from portal.models.student import Student
from portal.models.user import User, UserRole
from portal.schemas.user import StudentCreate, StudentOut, UserCreate, UserOut

router = APIRouter()


def _ensure_email_free(db: Session, email: str) -> None:
    if db.execute(select(User.id).where(User.email == email)).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")


@router.get("/users", response_model=list[UserOut])
def list_users(
    role: UserRole | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    query = select(User).order_by(User.last_name, User.first_name)
    if role is not None:
        query = query.where(User.role == role)
    return list(db.execute(query).scalars())


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> UserOut:
    _ensure_email_free(db, payload.email)
    user = User(**payload.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.get("/students", response_model=list[StudentOut])
def list_students(
    class_id: str | None = Query(default=None),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
) -> list[StudentOut]:
    query = select(Student).options(selectinload(Student.user))
    if class_id:
        query = query.where(Student.current_class_id == class_id)
    return list(db.execute(query).scalars())


@router.post("/students", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> StudentOut:
    _ensure_email_free(db, payload.email)
    academic_year_id = payload.current_academic_year_id
    if payload.current_class_id is not None:
        school_class = db.get(SchoolClass, payload.current_class_id)
        if school_class is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
        academic_year_id = academic_year_id or school_class.academic_year_id

    user = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        role=UserRole.student,
    )
    db.add(user)
    db.flush()
    student = Student(
        user_id=user.id,
        student_id_number=payload.student_id_number,
        current_class_id=payload.current_class_id,
        current_academic_year_id=academic_year_id,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student
