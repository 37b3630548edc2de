from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from portal.models.grading_scale import ScaleType


class GradeDefinitionPayload(BaseModel):
    grade: str = Field(min_length=1, max_length=20)
    min_score: float = Field(ge=0, le=1000)
    max_score: float = Field(ge=0, le=1000)
    remarks: str | None = Field(default=None, max_length=200)
    gpa: float | None = None
    points: float | None = None
    pass_status: Literal["Pass", "Fail", "SubsidiaryPass"] | None = None

    @model_validator(mode="after")
    def validate_range(self) -> "GradeDefinitionPayload":
        if self.min_score > self.max_score:
            raise ValueError("Minimum score cannot be greater than maximum score for a grade.")
        return self


class DivisionConfigPayload(BaseModel):
    division: str = Field(min_length=1, max_length=20)
    min_points: float
    max_points: float
    description: str | None = Field(default=None, max_length=200)

    @model_validator(mode="after")
    def validate_range(self) -> "DivisionConfigPayload":
        if self.min_points > self.max_points:
            raise ValueError("Minimum points cannot be greater than maximum points for a division configuration.")
        return self


def _trimmed_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class GradingScaleBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    academic_year_id: str | None = Field(default=None, max_length=36)
    level: str | None = Field(default=None, max_length=50)
    scale_type: ScaleType = ScaleType.standard_percentage
    description: str | None = Field(default=None, max_length=2000)
    grades: list[GradeDefinitionPayload] = Field(default_factory=list, max_length=50)
    division_configs: list[DivisionConfigPayload] = Field(default_factory=list, max_length=20)
    is_default: bool = False

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("academic_year_id", "level")
    @classmethod
    def normalize_scope(cls, value: str | None) -> str | None:
        return _trimmed_or_none(value)


class GradingScaleCreate(GradingScaleBase):
    pass


class GradingScaleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    academic_year_id: str | None = Field(default=None, max_length=36)
    level: str | None = Field(default=None, max_length=50)
    scale_type: ScaleType | None = None
    description: str | None = Field(default=None, max_length=2000)
    grades: list[GradeDefinitionPayload] | None = Field(default=None, max_length=50)
    division_configs: list[DivisionConfigPayload] | None = Field(default=None, max_length=20)
    is_default: bool | None = None

    @field_validator("academic_year_id", "level")
    @classmethod
    def normalize_scope(cls, value: str | None) -> str | None:
        return _trimmed_or_none(value)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @model_validator(mode="after")
    def reject_nulls(self) -> "GradingScaleUpdate":
        for field_name in ("name", "scale_type", "grades", "division_configs", "is_default"):
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{field_name} cannot be null")
        return self


class GradingScaleOut(GradingScaleBase):
    id: str
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}
