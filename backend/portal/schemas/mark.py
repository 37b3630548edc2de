from datetime import datetime

from pydantic import BaseModel, Field


class MarkEntry(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    marks_obtained: float | None = Field(default=None, ge=0)
    comments: str | None = Field(default=None, max_length=1000)


class MarkBatchRequest(BaseModel):
    assessment_id: str = Field(min_length=1, max_length=36)
    marks: list[MarkEntry] = Field(min_length=1, max_length=1000)
    mark_assessment_graded: bool = False


class MarkOut(BaseModel):
    id: str
    assessment_id: str
    student_id: str
    academic_year_id: str
    term_id: str | None
    marks_obtained: float | None
    comments: str | None
    recorded_by_id: str
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class MarkBatchOut(BaseModel):
    created: int
    updated: int
    marks: list[MarkOut]
