from __future__ import annotations

import logging

from sqlalchemy import inspect

from portal.db.base import Base
from portal.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_TABLES: tuple[str, ...] = (
    "users",
    "students",
    "academic_years",
    "terms",
    "classes",
    "subjects",
    "timetables",
    "timetable_periods",
    "exams",
    "assessments",
    "marks",
    "grading_scales",
)


def missing_tables(connection) -> list[str]:
    existing = set(inspect(connection).get_table_names())
    return [name for name in REQUIRED_TABLES if name not in existing]


def ensure_runtime_schema() -> None:
    """Create any missing tables; column changes go through Alembic migrations."""
    import portal.models  # noqa: F401

    with engine.begin() as connection:
        missing = missing_tables(connection)
        if not missing:
            return
        logger.info("Creating missing tables: %s", ", ".join(missing))
        Base.metadata.create_all(bind=connection)
