from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from portal.models.exam import ExamStatus


class ExamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    academic_year_id: str = Field(min_length=1, max_length=36)
    term_id: str | None = Field(default=None, max_length=36)
    start_date: date
    end_date: date
    description: str | None = Field(default=None, max_length=2000)
    status: ExamStatus = ExamStatus.scheduled
    weight: float | None = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def validate_dates(self) -> "ExamCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ExamUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = Field(default=None, max_length=2000)
    status: ExamStatus | None = None
    weight: float | None = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def reject_nulls(self) -> "ExamUpdate":
        for field_name in ("name", "start_date", "end_date", "status"):
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{field_name} cannot be null")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ExamOut(BaseModel):
    id: str
    name: str
    academic_year_id: str
    term_id: str | None
    start_date: date
    end_date: date
    description: str | None
    status: ExamStatus
    weight: float | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AssessmentCreate(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    assessment_type: str = Field(min_length=1, max_length=100)
    assessment_name: str = Field(min_length=1, max_length=200)
    max_marks: float = Field(gt=0, le=1000)
    assessment_date: date


class AssessmentOut(BaseModel):
    id: str
    exam_id: str
    subject_id: str
    class_id: str
    assessment_type: str
    assessment_name: str
    max_marks: float
    assessment_date: date
    is_graded: bool

    model_config = {"from_attributes": True}
