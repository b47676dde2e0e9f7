# backend/services/interview_store.py
"""
Write helpers for interviews, their questions and extraction jobs.

Helpers only add/flush; the caller decides where the transaction ends so an
interview, its questions and the owning job's terminal state can land in one
commit.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from core.exceptions import CompanyNotFound
from db.models import (
    Company,
    ExtractionJob,
    Interview,
    InterviewSource,
    ProcessStatus,
    Question,
    QuestionType,
    TERMINAL_STATUSES,
)
from services.company_resolver import resolve_or_create
from services.extractor import ExtractedQuestion


def build_metadata(title: Optional[str], full_experience: Optional[str]) -> dict:
    return {"title": title or "", "full_experience": full_experience or ""}


def create_interview(
    db: Session,
    *,
    owner_id: int,
    company_id: int,
    source: InterviewSource,
    raw_input: str,
    status: ProcessStatus,
    metadata: dict,
    position: Optional[str] = None,
    no_of_round: Optional[int] = None,
    location: Optional[str] = None,
    error: Optional[str] = None,
) -> Interview:
    if status not in TERMINAL_STATUSES:
        raise ValueError(f"interviews are only written in a terminal state, got {status}")
    interview = Interview(
        user_id=owner_id,
        company_id=company_id,
        source=source,
        raw_input=raw_input,
        process_status=status,
        process_error=error,
        position=position or None,
        no_of_round=no_of_round,
        location=location or None,
        meta=metadata,
    )
    db.add(interview)
    db.flush()
    return interview


def apply_interview_patch(db: Session, interview: Interview, owner_id: int, changes: dict) -> Interview:
    """
    Apply owner corrections to a finished interview. `changes` holds only the
    fields the caller sent. Raises CompanyNotFound for a foreign company_id.
    """
    if changes.get("company_id") is not None:
        company = (
            db.query(Company)
            .filter(Company.id == changes["company_id"], Company.user_id == owner_id)
            .first()
        )
        if company is None:
            raise CompanyNotFound("company not found", {"company_id": changes["company_id"]})
        interview.company_id = company.id
    elif "company_name" in changes and changes["company_name"] is not None:
        # blank resolves to the unknown company
        interview.company_id = resolve_or_create(db, owner_id, changes["company_name"])

    if changes.get("position") is not None:
        interview.position = changes["position"].strip()
    if changes.get("no_of_round") is not None:
        interview.no_of_round = changes["no_of_round"]
    if "location" in changes:
        interview.location = (changes["location"] or "").strip() or None
    if changes.get("title") is not None:
        # reassign so the JSON column is flagged dirty
        interview.meta = {**(interview.meta or {}), "title": changes["title"].strip()}

    db.flush()
    return interview


def add_questions(db: Session, interview_id: int, questions: Iterable[ExtractedQuestion]) -> int:
    rows = [
        Question(interview_id=interview_id, question=q.question, type=QuestionType(q.type))
        for q in questions
        if q.question
    ]
    if rows:
        db.add_all(rows)
        db.flush()
    return len(rows)


def create_job(
    db: Session,
    *,
    owner_id: int,
    source: InterviewSource,
    raw_input: str,
    content: str,
    metadata: dict,
) -> ExtractionJob:
    job = ExtractionJob(
        user_id=owner_id,
        source=source,
        raw_input=raw_input,
        content=content,
        meta=metadata,
        status=ProcessStatus.queued,
        attempts=0,
    )
    db.add(job)
    db.flush()
    return job




# ------------------------------
# Job state transitions
#
# Every transition is a single conditional UPDATE. `attempts` doubles as the
# claim token: only the delivery that bumped it to N may finish attempt N.
# ------------------------------
_OPEN_STATUSES = (ProcessStatus.queued, ProcessStatus.processing)


def claim_job(db: Session, job_id: int, stale_before: datetime) -> Optional[int]:
    """
    Move a job to processing for this delivery and return the attempt number,
    or None when it is terminal or another delivery holds a fresh claim.
    """
    res = db.execute(
        update(ExtractionJob)
        .where(
            ExtractionJob.id == job_id,
            or_(
                ExtractionJob.status == ProcessStatus.queued,
                and_(
                    ExtractionJob.status == ProcessStatus.processing,
                    ExtractionJob.updated_at < stale_before,
                ),
            ),
        )
        .values(status=ProcessStatus.processing, attempts=ExtractionJob.attempts + 1)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return None
    return db.execute(select(ExtractionJob.attempts).where(ExtractionJob.id == job_id)).scalar_one()


def finish_job(
    db: Session,
    job_id: int,
    status: ProcessStatus,
    *,
    attempt: int,
    interview_id: Optional[int] = None,
    error: Optional[str] = None,
) -> bool:
    """Close attempt `attempt`; False when a newer claim or a terminal state got there first."""
    if status not in TERMINAL_STATUSES:
        raise ValueError(f"jobs are only finished in a terminal state, got {status}")
    res = db.execute(
        update(ExtractionJob)
        .where(
            ExtractionJob.id == job_id,
            ExtractionJob.attempts == attempt,
            ExtractionJob.status.in_(_OPEN_STATUSES),
        )
        .values(status=status, interview_id=interview_id, error=error)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def requeue_job(db: Session, job_id: int, *, attempt: int, stale_before: datetime, now: datetime) -> bool:
    """Hand a stalled job back to the queue unless it moved since it was read."""
    res = db.execute(
        update(ExtractionJob)
        .where(
            ExtractionJob.id == job_id,
            ExtractionJob.attempts == attempt,
            ExtractionJob.status.in_(_OPEN_STATUSES),
            ExtractionJob.updated_at < stale_before,
        )
        .values(status=ProcessStatus.queued, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1
