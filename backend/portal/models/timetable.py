import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from portal.db.base import Base


class Timetable(Base):
    __tablename__ = "timetables"
    __table_args__ = (
        UniqueConstraint("name", "academic_year_id", "class_id", "term_id", name="uq_timetables_name_scope"),
        Index("ix_timetables_scope_active", "class_id", "academic_year_id", "term_id", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    academic_year_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    term_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    periods: Mapped[list["TimetablePeriod"]] = relationship(
        back_populates="timetable",
        cascade="all, delete-orphan",
        order_by="TimetablePeriod.position",
    )


class TimetablePeriod(Base):
    __tablename__ = "timetable_periods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    timetable_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("timetables.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # Preserves submission order so conflict scans are deterministic.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id"), nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)

    timetable: Mapped[Timetable] = relationship(back_populates="periods")
