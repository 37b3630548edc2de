"""Seed a small demo school: one academic year, two classes, an O-Level grading scale and an active timetable.

Run:
  PYTHONPATH=backend python scripts/seed_demo_school.py

Tokens for the demo accounts are printed at the end; the portal trusts tokens
signed with ``JWT_SECRET_KEY`` and does not issue them itself.
"""

from __future__ import annotations

import os
from datetime import date
from typing import Iterable

from sqlalchemy import select

from portal.core.security import create_access_token
from portal.db.bootstrap import ensure_runtime_schema
from portal.db.session import SessionLocal
from portal.models import (
    AcademicYear,
    GradingScale,
    SchoolClass,
    Student,
    Subject,
    Term,
    Timetable,
    TimetablePeriod,
    User,
    UserRole,
)
from portal.models.grading_scale import ScaleType

YEAR_NAME = os.getenv("DEMO_YEAR", "2026")
LEVEL = "O-Level"

DEMO_ACCOUNTS = {
    "admin": ("Demo", "Admin", "admin.demo@school.test", UserRole.admin),
    "teacher_1": ("Grace", "Hopper", "teacher1.demo@school.test", UserRole.teacher),
    "teacher_2": ("Alan", "Turing", "teacher2.demo@school.test", UserRole.teacher),
    "student_a": ("Amina", "Juma", "studenta.demo@school.test", UserRole.student),
}

SUBJECTS = {"MATH": "Mathematics", "PHY": "Physics", "ENG": "English"}

O_LEVEL_GRADES = [
    {"grade": "A", "min_score": 75, "max_score": 100, "remarks": "Excellent", "points": 1},
    {"grade": "B", "min_score": 65, "max_score": 74.99, "remarks": "Very Good", "points": 2},
    {"grade": "C", "min_score": 45, "max_score": 64.99, "remarks": "Good", "points": 3},
    {"grade": "D", "min_score": 30, "max_score": 44.99, "remarks": "Satisfactory", "points": 4},
    {"grade": "F", "min_score": 0, "max_score": 29.99, "remarks": "Fail", "points": 5},
]

O_LEVEL_DIVISIONS = [
    {"division": "I", "min_points": 7, "max_points": 17, "description": "Division One"},
    {"division": "II", "min_points": 18, "max_points": 21, "description": "Division Two"},
    {"division": "III", "min_points": 22, "max_points": 25, "description": "Division Three"},
    {"division": "IV", "min_points": 26, "max_points": 33, "description": "Division Four"},
    {"division": "0", "min_points": 34, "max_points": 35, "description": "Fail"},
]


def _upsert_user(session, *, first_name: str, last_name: str, email: str, role: UserRole) -> User:
    existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing is None:
        existing = User(first_name=first_name, last_name=last_name, email=email, role=role, is_active=True)
        session.add(existing)
    else:
        existing.first_name = first_name
        existing.last_name = last_name
        existing.role = role
        existing.is_active = True
    session.flush()
    return existing


def _get_or_create(session, model, lookup: dict, **values):
    existing = session.execute(select(model).filter_by(**lookup)).scalar_one_or_none()
    if existing is None:
        existing = model(**lookup, **values)
        session.add(existing)
        session.flush()
    return existing


def _seed(session) -> dict[str, User]:
    users = {
        key: _upsert_user(session, first_name=first, last_name=last, email=email, role=role)
        for key, (first, last, email, role) in DEMO_ACCOUNTS.items()
    }

    year = _get_or_create(
        session,
        AcademicYear,
        {"name": YEAR_NAME},
        start_date=date(int(YEAR_NAME), 1, 5),
        end_date=date(int(YEAR_NAME), 12, 4),
        is_current=True,
    )
    term = _get_or_create(
        session,
        Term,
        {"academic_year_id": year.id, "name": "Term 1"},
        start_date=date(int(YEAR_NAME), 1, 5),
        end_date=date(int(YEAR_NAME), 4, 3),
    )
    form_one = _get_or_create(session, SchoolClass, {"academic_year_id": year.id, "name": "Form 1A"}, level=LEVEL)
    _get_or_create(session, SchoolClass, {"academic_year_id": year.id, "name": "Form 2A"}, level=LEVEL)
    subjects = {code: _get_or_create(session, Subject, {"code": code}, name=name) for code, name in SUBJECTS.items()}

    _get_or_create(
        session,
        Student,
        {"user_id": users["student_a"].id},
        student_id_number="DEMO-001",
        current_class_id=form_one.id,
        current_academic_year_id=year.id,
    )
    _get_or_create(
        session,
        GradingScale,
        {"name": f"{LEVEL} {YEAR_NAME}"},
        academic_year_id=year.id,
        level=LEVEL,
        scale_type=ScaleType.o_level_division.value,
        grades=O_LEVEL_GRADES,
        division_configs=O_LEVEL_DIVISIONS,
        is_default=True,
    )

    timetable = session.execute(
        select(Timetable).where(Timetable.class_id == form_one.id, Timetable.name == "Form 1A weekly")
    ).scalar_one_or_none()
    if timetable is None:
        session.add(
            Timetable(
                name="Form 1A weekly",
                academic_year_id=year.id,
                class_id=form_one.id,
                term_id=term.id,
                is_active=True,
                version=1,
                periods=[
                    TimetablePeriod(
                        position=0,
                        day_of_week="Monday",
                        start_time="08:00",
                        end_time="08:40",
                        subject_id=subjects["MATH"].id,
                        teacher_id=users["teacher_1"].id,
                        location="Room 1",
                    ),
                    TimetablePeriod(
                        position=1,
                        day_of_week="Monday",
                        start_time="08:40",
                        end_time="09:20",
                        subject_id=subjects["PHY"].id,
                        teacher_id=users["teacher_2"].id,
                        location="Lab 1",
                    ),
                ],
            )
        )
    return users


def _print_accounts(items: Iterable[tuple[str, User]]) -> None:
    print("\nDemo accounts ready:")
    for label, user in items:
        print(f"  - {label}: {user.email} | role={user.role.value}")
        print(f"    Authorization: Bearer {create_access_token(user.id)}")


def main() -> None:
    ensure_runtime_schema()
    with SessionLocal() as session:
        users = _seed(session)
        session.commit()
        _print_accounts(users.items())


if __name__ == "__main__":
    main()
