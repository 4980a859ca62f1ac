from typing import List, Optional, Literal
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime, timezone

Role = Literal["admin", "teacher", "student"]


def to_naive_utc(value: datetime) -> datetime:
    """MongoDB hands back naive UTC datetimes at millisecond precision, so store them that way too."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


# Users Collection Schema
class User(BaseModel):
    uid: str
    role: Role
    email: str
    name: str
    department: Optional[str] = None
    semester: Optional[int] = None
    enrollmentNumber: Optional[str] = None


# Authenticated caller, as carried in the access token
class Principal(BaseModel):
    uid: str
    email: Optional[str] = None
    role: Role


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: str
    password: str


# Quizzes Collection Schema
class QuestionIn(BaseModel):
    questionText: str = Field(min_length=1)
    options: List[str] = Field(min_length=1)
    correctAnswer: int = Field(ge=0)
    marks: int = Field(ge=1)

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, value: List[str]) -> List[str]:
        if any(not option.strip() for option in value):
            raise ValueError("options must not be blank")
        return value

    @model_validator(mode="after")
    def correct_answer_in_range(self):
        if self.correctAnswer >= len(self.options):
            raise ValueError("correctAnswer must index one of the options")
        return self


class QuizCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    subjectId: str = Field(min_length=1)
    questions: List[QuestionIn] = Field(min_length=1)
    duration: int = Field(ge=1)  # minutes
    startDate: datetime
    endDate: datetime

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description")
    @classmethod
    def trim_description(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None

    @field_validator("startDate", "endDate")
    @classmethod
    def normalise_dates(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def window_in_order(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must not be before startDate")
        return self

    @property
    def total_marks(self) -> int:
        return sum(question.marks for question in self.questions)


# Attempts (embedded in quizzes)
class AnswerIn(BaseModel):
    questionIndex: int
    selectedOption: int


class SubmitRequest(BaseModel):
    answers: List[AnswerIn] = []


class SubmitResult(BaseModel):
    message: str
    score: int
    totalMarks: int
    percentage: float


class ResultEntry(BaseModel):
    student: dict
    score: int
    percentage: float
    submittedAt: Optional[datetime] = None


class QuizResults(BaseModel):
    quizTitle: str
    totalMarks: int
    totalStudents: int
    results: List[ResultEntry] = []
