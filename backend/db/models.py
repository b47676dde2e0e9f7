# db/models.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    func,
    ForeignKey,
    Boolean,
    JSON,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from .session import Base

import enum
from sqlalchemy.types import Enum as SAEnum


# width of the short text columns (company name/slug, position, location)
SHORT_TEXT_LEN = 255


class InterviewSource(str, enum.Enum):
    personal = "personal"
    other = "other"
    leetcode = "leetcode"
    reddit = "reddit"
    gfg = "gfg"


# sources whose raw_input is already the experience text
TEXT_SOURCES = {InterviewSource.personal, InterviewSource.other}


# --- processing lifecycle (jobs walk all four, interviews are only ever terminal) ---
class ProcessStatus(str, enum.Enum):
    queued = "queued"
    processing = "processing"
    success = "success"
    failed = "failed"


TERMINAL_STATUSES = {ProcessStatus.success, ProcessStatus.failed}


class QuestionType(str, enum.Enum):
    dsa = "dsa"
    system_design = "system_design"
    behavioral = "behavioral"
    other = "other"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    companies = relationship("Company", back_populates="user", cascade="all, delete")


class Company(Base):
    __tablename__ = "companies"
    __table_args__ = (
        # name is stored normalized (trimmed, lowercased)
        UniqueConstraint("user_id", "name", name="uq_companies_user_name"),
        Index("ix_companies_user_slug", "user_id", "slug"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(SHORT_TEXT_LEN), nullable=False)
    slug = Column(String(SHORT_TEXT_LEN), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="companies")
    interviews = relationship("Interview", back_populates="company")


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    source = Column(SAEnum(InterviewSource, native_enum=False), nullable=False)
    raw_input = Column(Text, nullable=False)

    process_status = Column(SAEnum(ProcessStatus, native_enum=False), nullable=False)
    process_error = Column(Text, nullable=True)

    position = Column(String(SHORT_TEXT_LEN), nullable=True)
    no_of_round = Column(Integer, nullable=True)
    location = Column(String(SHORT_TEXT_LEN), nullable=True)

    # "metadata" is reserved on declarative classes, map it under another attribute
    meta = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    company = relationship("Company", back_populates="interviews")
    questions = relationship(
        "Question",
        back_populates="interview",
        cascade="all, delete-orphan",
        order_by="Question.id",
    )


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    interview_id = Column(Integer, ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    type = Column(SAEnum(QuestionType, native_enum=False), nullable=False, default=QuestionType.other)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    interview = relationship("Interview", back_populates="questions")


class ExtractionJob(Base):
    """Durable record of one AI-assisted submission's background work."""
    __tablename__ = "extraction_jobs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    source = Column(SAEnum(InterviewSource, native_enum=False), nullable=False)
    raw_input = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    meta = Column("metadata", JSON, nullable=False, default=dict)

    status = Column(SAEnum(ProcessStatus, native_enum=False), nullable=False, default=ProcessStatus.queued, index=True)
    error = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    task_id = Column(String(255), nullable=True, index=True)
    interview_id = Column(Integer, ForeignKey("interviews.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
