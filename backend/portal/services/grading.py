from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

NOT_APPLICABLE = "N/A"
O_LEVEL_DIVISION_SCALE = "O-Level Division Points"


@dataclass(frozen=True)
class GradeDefinition:
    grade: str
    min_score: float
    max_score: float
    remarks: str | None = None
    points: float | None = None

    def matches(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score


@dataclass(frozen=True)
class DivisionConfig:
    division: str
    min_points: float
    max_points: float
    description: str | None = None


@dataclass(frozen=True)
class GradingScaleRecord:
    name: str
    grades: Sequence[GradeDefinition]
    academic_year_id: str | None = None
    level: str | None = None
    is_default: bool = False
    scale_type: str | None = None
    division_configs: Sequence[DivisionConfig] = field(default_factory=tuple)

    @classmethod
    def from_payload(
        cls,
        *,
        name: str,
        grades: Iterable[dict],
        division_configs: Iterable[dict] = (),
        academic_year_id: str | None = None,
        level: str | None = None,
        is_default: bool = False,
        scale_type: str | None = None,
    ) -> "GradingScaleRecord":
        """Build a record from the JSON shapes stored on ``GradingScale`` rows."""
        return cls(
            name=name,
            academic_year_id=academic_year_id,
            level=level,
            is_default=is_default,
            scale_type=scale_type,
            grades=tuple(
                GradeDefinition(
                    grade=item["grade"],
                    min_score=float(item["min_score"]),
                    max_score=float(item["max_score"]),
                    remarks=item.get("remarks"),
                    points=item.get("points"),
                )
                for item in grades
            ),
            division_configs=tuple(
                DivisionConfig(
                    division=item["division"],
                    min_points=float(item["min_points"]),
                    max_points=float(item["max_points"]),
                    description=item.get("description"),
                )
                for item in division_configs
            ),
        )


@dataclass(frozen=True)
class GradingScaleCriteria:
    """One lookup in the resolution cascade.

    ``None`` for ``academic_year_id`` or ``level`` means the scale must have no
    year or no level; ``default_only`` restricts the lookup to default scales.
    """

    academic_year_id: str | None
    level: str | None
    default_only: bool


@dataclass(frozen=True)
class GradeOutcome:
    grade: str
    remarks: str
    points: float | None = None


@dataclass(frozen=True)
class DivisionOutcome:
    division: str
    description: str | None = None
    total_points: float | None = None
    subjects_counted: int = 0


def grading_scale_cascade(academic_year_id: str | None, level: str | None) -> list[GradingScaleCriteria]:
    """Lookups from most to least specific; level-scoped steps are skipped when the level is unknown."""
    level = (level or "").strip() or None
    years = (academic_year_id, None) if academic_year_id else (None,)
    levels = (level, None) if level else (None,)
    return [
        GradingScaleCriteria(year, scoped_level, default_only)
        for year in years
        for scoped_level in levels
        for default_only in (True, False)
    ]


def resolve_grading_scale(
    lookup: Callable[[GradingScaleCriteria], GradingScaleRecord | None],
    academic_year_id: str | None,
    level: str | None,
) -> GradingScaleRecord | None:
    for criteria in grading_scale_cascade(academic_year_id, level):
        scale = lookup(criteria)
        if scale is not None:
            logger.debug("Grading scale %r matched %s", scale.name, criteria)
            return scale
    logger.warning("No grading scale found for academic year %s, level %s", academic_year_id, level)
    return None


def apply_grading_scale(percentage: float | None, scale: GradingScaleRecord | None) -> GradeOutcome:
    if percentage is None or math.isnan(percentage) or scale is None:
        return GradeOutcome(NOT_APPLICABLE, "N/A - Grading scale not applied or score missing")
    for definition in scale.grades:
        if definition.matches(percentage):
            return GradeOutcome(definition.grade, definition.remarks or NOT_APPLICABLE, definition.points)
    return GradeOutcome(NOT_APPLICABLE, "N/A - Out of range")


def determine_division(subject_points: Iterable[float], scale: GradingScaleRecord | None, best_subjects: int) -> DivisionOutcome:
    """Sum the ``best_subjects`` lowest grade points and match them against the scale's divisions."""
    if scale is None or scale.scale_type != O_LEVEL_DIVISION_SCALE or not scale.division_configs:
        return DivisionOutcome(NOT_APPLICABLE)
    counted = sorted(subject_points)[: max(0, best_subjects)]
    if not counted:
        return DivisionOutcome(NOT_APPLICABLE, "No graded subjects with points")
    total = sum(counted)
    for config in scale.division_configs:
        if config.min_points <= total <= config.max_points:
            return DivisionOutcome(config.division, config.description, total, len(counted))
    return DivisionOutcome(NOT_APPLICABLE, "Points out of division range", total, len(counted))
