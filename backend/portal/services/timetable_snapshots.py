from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from portal.models.school_class import SchoolClass
from portal.models.subject import Subject
from portal.models.timetable import Timetable
from portal.models.user import User
from portal.services.conflict_service import PeriodSlot, TimetableSnapshot


class _PeriodLike(Protocol):
    day_of_week: str
    start_time: str
    end_time: str
    subject_id: str
    teacher_id: str | None
    location: str | None


class NameLookup:
    """Resolves subject, teacher and class display names for conflict messages."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.subjects: dict[str, str] = {}
        self.teachers: dict[str, str] = {}
        self.classes: dict[str, str] = {}

    def load(self, periods: Iterable[_PeriodLike], class_ids: Iterable[str] = ()) -> "NameLookup":
        periods = list(periods)
        subject_ids = {p.subject_id for p in periods} - self.subjects.keys()
        teacher_ids = {p.teacher_id for p in periods if p.teacher_id} - self.teachers.keys()
        wanted_classes = set(class_ids) - self.classes.keys()
        if subject_ids:
            rows = self.db.execute(select(Subject.id, Subject.name).where(Subject.id.in_(subject_ids))).all()
            self.subjects.update({row.id: row.name for row in rows})
        if teacher_ids:
            for teacher in self.db.execute(select(User).where(User.id.in_(teacher_ids))).scalars():
                self.teachers[teacher.id] = teacher.full_name
        if wanted_classes:
            rows = self.db.execute(select(SchoolClass.id, SchoolClass.name).where(SchoolClass.id.in_(wanted_classes))).all()
            self.classes.update({row.id: row.name for row in rows})
        return self

    def slot(self, period: _PeriodLike) -> PeriodSlot:
        return PeriodSlot(
            day_of_week=period.day_of_week,
            start_time=period.start_time,
            end_time=period.end_time,
            subject_id=period.subject_id,
            teacher_id=period.teacher_id,
            location=period.location,
            subject_name=self.subjects.get(period.subject_id),
            teacher_name=self.teachers.get(period.teacher_id) if period.teacher_id else None,
        )


def load_active_snapshots(
    db: Session,
    academic_year_id: str,
    term_id: str | None,
    names: NameLookup,
) -> list[TimetableSnapshot]:
    """Active timetables sharing the academic year and term bucket, with display names resolved."""
    query = (
        select(Timetable)
        .options(selectinload(Timetable.periods))
        .where(Timetable.is_active.is_(True), Timetable.academic_year_id == academic_year_id)
        .order_by(Timetable.created_at, Timetable.id)
    )
    if term_id is None:
        query = query.where(Timetable.term_id.is_(None))
    else:
        query = query.where(Timetable.term_id == term_id)
    timetables: Sequence[Timetable] = list(db.execute(query).scalars())

    names.load(
        (period for timetable in timetables for period in timetable.periods),
        class_ids=(timetable.class_id for timetable in timetables),
    )
    return [
        TimetableSnapshot(
            id=timetable.id,
            academic_year_id=timetable.academic_year_id,
            class_id=timetable.class_id,
            term_id=timetable.term_id,
            is_active=timetable.is_active,
            periods=tuple(names.slot(period) for period in timetable.periods),
            class_name=names.classes.get(timetable.class_id),
        )
        for timetable in timetables
    ]
