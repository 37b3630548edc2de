from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator


def _strip_required(value: str) -> str:
    trimmed = value.strip()
    if not trimmed:
        raise ValueError("Value cannot be empty")
    return trimmed


class AcademicYearCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date
    is_current: bool = False

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return _strip_required(value)

    @model_validator(mode="after")
    def validate_dates(self) -> "AcademicYearCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AcademicYearOut(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    is_current: bool

    model_config = {"from_attributes": True}


class TermCreate(BaseModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_dates(self) -> "TermCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class TermOut(BaseModel):
    id: str
    academic_year_id: str
    name: str
    start_date: date
    end_date: date

    model_config = {"from_attributes": True}


class SchoolClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    level: str | None = Field(default=None, max_length=50)
    academic_year_id: str = Field(min_length=1, max_length=36)

    @field_validator("level")
    @classmethod
    def normalize_level(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class SchoolClassOut(BaseModel):
    id: str
    name: str
    level: str | None
    academic_year_id: str

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return _strip_required(value).upper()


class SubjectOut(BaseModel):
    id: str
    name: str
    code: str

    model_config = {"from_attributes": True}
