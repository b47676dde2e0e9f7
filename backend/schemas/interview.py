from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from db.models import Interview, InterviewSource, ProcessStatus, Question, QuestionType, ExtractionJob


class ManualInterviewCreate(BaseModel):
    source: InterviewSource
    company_name: Optional[str] = None
    company_id: Optional[int] = None
    position: str = Field(..., min_length=1, max_length=255)
    no_of_round: int = Field(..., ge=0, le=50)
    location: Optional[str] = Field(default=None, max_length=255)
    raw_input: str = Field(..., min_length=1)
    title: Optional[str] = None

    @model_validator(mode="after")
    def _company_given(self):
        if self.company_id is None and not (self.company_name or "").strip():
            raise ValueError("company_name or company_id is required")
        return self


class AIInterviewCreate(BaseModel):
    source: InterviewSource
    # free text for personal/other, a post URL for leetcode/reddit/gfg
    raw_input: str = Field(..., min_length=1)


class InterviewMetadata(BaseModel):
    title: str = ""
    full_experience: str = ""


class QuestionOut(BaseModel):
    q_id: int
    interview_id: int
    question: str
    type: QuestionType

    @classmethod
    def from_row(cls, q: Question) -> "QuestionOut":
        return cls(q_id=q.id, interview_id=q.interview_id, question=q.question, type=q.type)


class InterviewOut(BaseModel):
    interview_id: int
    company_id: int
    company_name: Optional[str] = None
    source: InterviewSource
    raw_input: str
    process_status: ProcessStatus
    process_error: Optional[str] = None
    position: Optional[str] = None
    no_of_round: Optional[int] = None
    location: Optional[str] = None
    metadata: InterviewMetadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, i: Interview) -> "InterviewOut":
        return cls(
            interview_id=i.id,
            company_id=i.company_id,
            company_name=i.company.name if i.company is not None else None,
            source=i.source,
            raw_input=i.raw_input,
            process_status=i.process_status,
            process_error=i.process_error,
            position=i.position,
            no_of_round=i.no_of_round,
            location=i.location,
            metadata=InterviewMetadata(**(i.meta or {})),
            created_at=i.created_at,
            updated_at=i.updated_at,
        )


class InterviewDetailOut(BaseModel):
    interview: InterviewOut
    questions: List[QuestionOut]


class InterviewListOut(BaseModel):
    data: List[InterviewOut]
    total: int
    page: int
    page_size: int


class ExtractionAccepted(BaseModel):
    queued: bool = True
    job_id: int
    task_id: Optional[str] = None
    metadata: InterviewMetadata


class ExtractionJobOut(BaseModel):
    job_id: int
    source: InterviewSource
    status: ProcessStatus
    error: Optional[str] = None
    attempts: int
    interview_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, j: ExtractionJob) -> "ExtractionJobOut":
        return cls(
            job_id=j.id,
            source=j.source,
            status=j.status,
            error=j.error,
            attempts=j.attempts or 0,
            interview_id=j.interview_id,
            created_at=j.created_at,
            updated_at=j.updated_at,
        )


class FieldCount(BaseModel):
    field: str
    count: int


class InterviewStatsOut(BaseModel):
    source_stats: List[FieldCount]
    process_status_stats: List[FieldCount]


class DeleteInterviewsIn(BaseModel):
    interview_ids: List[int] = Field(..., min_length=1)


class InterviewPatch(BaseModel):
    """Owner corrections; status, source and raw input are not editable."""
    company_name: Optional[str] = None
    company_id: Optional[int] = None
    position: Optional[str] = Field(default=None, min_length=1, max_length=255)
    no_of_round: Optional[int] = Field(default=None, ge=0, le=50)
    location: Optional[str] = Field(default=None, max_length=255)
    title: Optional[str] = None

    @model_validator(mode="after")
    def _check(self):
        if not self.model_fields_set:
            raise ValueError("nothing to update")
        if self.company_id is not None and self.company_name is not None:
            raise ValueError("give company_name or company_id, not both")
        return self


# ---------------------------
# Questions
# ---------------------------

class QuestionCreate(BaseModel):
    interview_id: int
    question: str = Field(..., min_length=1)
    type: QuestionType = QuestionType.other

    @field_validator("question")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("question must not be blank")
        return v


class QuestionUpdate(BaseModel):
    question: Optional[str] = None
    type: Optional[QuestionType] = None

    @field_validator("question")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("question must not be blank")
        return v

    @model_validator(mode="after")
    def _check(self):
        if self.question is None and self.type is None:
            raise ValueError("question or type is required")
        return self


class QuestionsByTypeOut(BaseModel):
    interview_id: int
    total: int
    # every QuestionType value is present, possibly with []
    questions: Dict[str, List[QuestionOut]]
