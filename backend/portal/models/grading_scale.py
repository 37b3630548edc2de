import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from portal.db.base import Base


class ScaleType(str, Enum):
    general_gpa = "General GPA"
    o_level_division = "O-Level Division Points"
    a_level_points = "A-Level Subject Points"
    primary_aggregate = "Primary School Aggregate"
    standard_percentage = "Standard Percentage"


class GradingScale(Base):
    __tablename__ = "grading_scales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    academic_year_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=True
    )
    level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scale_type: Mapped[str] = mapped_column(String(50), nullable=False, default=ScaleType.standard_percentage.value)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Ordered list of {"grade", "min_score", "max_score", "remarks", "points", "gpa", "pass_status"}.
    grades: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    # Ordered list of {"division", "min_points", "max_points", "description"}.
    division_configs: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    is_default: Mapped[bool] = mapped_column(nullable=False, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
