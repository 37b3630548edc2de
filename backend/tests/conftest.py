import os
from datetime import date
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import portal.models  # noqa: F401
from portal.api.deps import get_db
from portal.core.security import create_access_token
from portal.db.base import Base
from portal.main import app
from portal.models import AcademicYear, SchoolClass, Student, Subject, Term, User, UserRole


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def add_user(db, first_name: str, last_name: str, role: UserRole) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name}.{last_name}@school.test".lower(),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def school(db_session):
    """A single academic year with one term, two O-Level classes, two subjects and two teachers."""
    db = db_session
    year = AcademicYear(name="2026", start_date=date(2026, 1, 5), end_date=date(2026, 12, 4), is_current=True)
    db.add(year)
    db.flush()
    term = Term(academic_year_id=year.id, name="Term 1", start_date=date(2026, 1, 5), end_date=date(2026, 4, 3))
    form_one = SchoolClass(name="Form 1A", level="O-Level", academic_year_id=year.id)
    form_two = SchoolClass(name="Form 2A", level="O-Level", academic_year_id=year.id)
    maths = Subject(name="Mathematics", code="MATH")
    physics = Subject(name="Physics", code="PHY")
    db.add_all([term, form_one, form_two, maths, physics])
    db.commit()

    admin = add_user(db, "Ada", "Admin", UserRole.admin)
    teacher_a = add_user(db, "Grace", "Hopper", UserRole.teacher)
    teacher_b = add_user(db, "Alan", "Turing", UserRole.teacher)
    student_user = add_user(db, "Amina", "Juma", UserRole.student)
    student = Student(
        user_id=student_user.id,
        student_id_number="S-001",
        current_class_id=form_one.id,
        current_academic_year_id=year.id,
    )
    db.add(student)
    db.commit()

    return SimpleNamespace(
        year=year,
        term=term,
        form_one=form_one,
        form_two=form_two,
        maths=maths,
        physics=physics,
        admin=admin,
        teacher_a=teacher_a,
        teacher_b=teacher_b,
        student_user=student_user,
        student=student,
    )
