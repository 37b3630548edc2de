from pydantic import BaseModel, EmailStr, Field, field_validator

from portal.models.user import UserRole


class UserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    role: UserRole

    @field_validator("first_name", "last_name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    role: UserRole
    is_active: bool

    model_config = {"from_attributes": True}


class StudentCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    student_id_number: str | None = Field(default=None, max_length=50)
    current_class_id: str | None = Field(default=None, max_length=36)
    current_academic_year_id: str | None = Field(default=None, max_length=36)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class StudentOut(BaseModel):
    id: str
    user_id: str
    student_id_number: str | None
    current_class_id: str | None
    current_academic_year_id: str | None
    is_active: bool
    user: UserOut

    model_config = {"from_attributes": True}
