# backend/tasks/extraction_tasks.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from celery_app import app
from core.config import settings
from core.exceptions import AppError, ExtractionError, SentinelCompanyMissing
from db.models import ExtractionJob, Interview, ProcessStatus, TERMINAL_STATUSES
from db.session import SessionLocal
from services.company_resolver import get_unknown_company, normalize_company_name, resolve_or_create
from services.extractor import Extractor, get_extractor
from services.interview_store import (
    add_questions,
    claim_job,
    create_interview,
    finish_job,
    requeue_job,
)

log = logging.getLogger(__name__)


def _stale_before(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(seconds=settings.extraction_stale_after_seconds)


# ------------------------------
# Worker bodies (plain functions, session + extractor injected)
# ------------------------------
def _superseded(db: Session, job_id: int, attempt: int) -> Dict[str, Any]:
    db.rollback()
    log.warning("extraction attempt superseded, discarding result", extra={"job_id": job_id, "attempt": attempt})
    return {"ok": False, "job_id": job_id, "skipped": True, "error": "superseded"}


def _record_failure(db: Session, job: ExtractionJob, attempt: int, sentinel_id: int, error: str) -> Dict[str, Any]:
    """Failed interview against the sentinel company + job marked failed, one commit."""
    job_id = job.id
    try:
        interview = create_interview(
            db,
            owner_id=job.user_id,
            company_id=sentinel_id,
            source=job.source,
            raw_input=job.raw_input,
            status=ProcessStatus.failed,
            metadata=job.meta or {},
            error=error,
        )
        if not finish_job(db, job_id, ProcessStatus.failed, attempt=attempt, interview_id=interview.id, error=error):
            return _superseded(db, job_id, attempt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("failed to record extraction failure", extra={"job_id": job_id})
        return {"ok": False, "job_id": job_id, "error": error}
    log.warning("extraction failed", extra={"job_id": job_id, "interview_id": interview.id, "error": error})
    return {"ok": False, "job_id": job_id, "interview_id": interview.id, "error": error}


def process_extraction_job(db: Session, job_id: int, extractor: Extractor) -> Dict[str, Any]:
    """
    Run one AI-assisted submission to a terminal state:
    claim -> extract -> resolve company -> interview + questions + job state in one commit.

    Only the delivery holding the latest claim can finish the job, so a
    redelivered or re-swept message never adds a second interview.
    """
    job = db.get(ExtractionJob, job_id)
    if job is None:
        log.warning("extraction job not found", extra={"job_id": job_id})
        return {"ok": False, "job_id": job_id, "error": "job not found"}
    if job.status in TERMINAL_STATUSES:
        return {"ok": True, "job_id": job_id, "skipped": True, "interview_id": job.interview_id}

    attempt = claim_job(db, job_id, _stale_before())
    if attempt is None:
        db.rollback()
        log.info("extraction job held by another delivery", extra={"job_id": job_id})
        return {"ok": True, "job_id": job_id, "skipped": True, "interview_id": None}
    db.commit()
    db.refresh(job)

    owner_id = job.user_id
    try:
        sentinel_id = get_unknown_company(db, owner_id).id
    except SentinelCompanyMissing as e:
        # no company to attach an interview to; only the job can carry the error
        log.error("unknown company missing for owner", extra={"job_id": job_id, "owner_id": owner_id})
        if not finish_job(db, job_id, ProcessStatus.failed, attempt=attempt, error=e.message):
            return _superseded(db, job_id, attempt)
        db.commit()
        return {"ok": False, "job_id": job_id, "error": e.message}

    # 1. extract
    try:
        extracted = extractor.extract(job.content)
    except ExtractionError as e:
        return _record_failure(db, job, attempt, sentinel_id, e.message)
    except Exception as e:  # pluggable extractors, soft time limit
        log.exception("extractor raised", extra={"job_id": job_id})
        return _record_failure(db, job, attempt, sentinel_id, str(e) or type(e).__name__)

    # 2. company, sentinel on blank name or resolver error
    company_id = sentinel_id
    name = normalize_company_name(extracted.company)
    if name:
        try:
            company_id = resolve_or_create(db, owner_id, name)
        except (SQLAlchemyError, AppError):
            db.rollback()
            log.exception("company resolution failed, using unknown company", extra={"job_id": job_id})
            company_id = sentinel_id

    # 3 + 4. interview, questions and job state together
    meta = dict(job.meta or {})
    if not meta.get("title"):
        meta["title"] = extracted.title
    try:
        interview = create_interview(
            db,
            owner_id=owner_id,
            company_id=company_id,
            source=job.source,
            raw_input=job.raw_input,
            status=ProcessStatus.success,
            metadata=meta,
            position=extracted.position,
            no_of_round=extracted.no_of_round,
            location=extracted.location,
        )
        count = add_questions(db, interview.id, extracted.questions)
        if not finish_job(db, job_id, ProcessStatus.success, attempt=attempt, interview_id=interview.id):
            return _superseded(db, job_id, attempt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("failed to persist extracted interview", extra={"job_id": job_id})
        try:
            if finish_job(db, job_id, ProcessStatus.failed, attempt=attempt, error=f"persist failed: {e}"):
                db.commit()
            else:
                db.rollback()
        except SQLAlchemyError:
            db.rollback()
            log.exception("failed to mark job failed", extra={"job_id": job_id})
        return {"ok": False, "job_id": job_id, "error": "persist failed"}

    log.info(
        "extraction finished",
        extra={"job_id": job_id, "interview_id": interview.id, "company_id": company_id, "questions": count},
    )
    return {"ok": True, "job_id": job_id, "interview_id": interview.id, "questions": count}


def derive_manual_questions(db: Session, interview_id: int, extractor: Extractor) -> Dict[str, Any]:
    """
    Best-effort question list for a manually created interview. Never touches
    company/position/rounds/location; every failure is logged and dropped.
    """
    interview = db.get(Interview, interview_id)
    if interview is None:
        log.warning("interview not found for question extraction", extra={"interview_id": interview_id})
        return {"ok": False, "error": "interview not found"}
    if interview.questions:
        return {"ok": True, "skipped": True, "count": len(interview.questions)}

    try:
        questions = extractor.extract_questions(interview.raw_input)
        count = add_questions(db, interview.id, questions)
        db.commit()
    except Exception as e:
        db.rollback()
        log.exception("manual question extraction failed", extra={"interview_id": interview_id})
        return {"ok": False, "error": str(e)}
    log.info("manual questions saved", extra={"interview_id": interview_id, "questions": count})
    return {"ok": True, "count": count}


def sweep_stale_jobs(
    db: Session,
    dispatch: Callable[[int], Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Jobs stuck in queued/processing (lost dispatch, dead worker) go back to
    queued and are sent again; after EXTRACTION_MAX_ATTEMPTS they are closed
    as failed so the submission still reaches a terminal state. Each job is
    its own transaction; a job that moved since it was read is left alone.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = _stale_before(now)
    stale = [
        (row.id, row.user_id, row.attempts or 0)
        for row in db.query(ExtractionJob.id, ExtractionJob.user_id, ExtractionJob.attempts)
        .filter(
            ExtractionJob.status.in_([ProcessStatus.queued, ProcessStatus.processing]),
            ExtractionJob.updated_at < cutoff,
        )
        .order_by(ExtractionJob.id.asc())
        .all()
    ]

    requeue, gave_up = [], []
    for job_id, owner_id, attempts in stale:
        if attempts >= settings.extraction_max_attempts:
            error = f"gave up after {attempts} attempts"
            job = db.get(ExtractionJob, job_id)
            interview_id = None
            try:
                sentinel_id = get_unknown_company(db, owner_id).id
            except SentinelCompanyMissing:
                pass
            else:
                interview_id = create_interview(
                    db,
                    owner_id=owner_id,
                    company_id=sentinel_id,
                    source=job.source,
                    raw_input=job.raw_input,
                    status=ProcessStatus.failed,
                    metadata=job.meta or {},
                    error=error,
                ).id
            if finish_job(db, job_id, ProcessStatus.failed, attempt=attempts, interview_id=interview_id, error=error):
                db.commit()
                gave_up.append(job_id)
            else:
                db.rollback()
        elif requeue_job(db, job_id, attempt=attempts, stale_before=cutoff, now=now):
            db.commit()
            requeue.append(job_id)
        else:
            db.rollback()

    for job_id in requeue:
        try:
            dispatch(job_id)
        except Exception:
            log.exception("failed to requeue extraction job", extra={"job_id": job_id})
    if requeue or gave_up:
        log.info("stale extraction sweep", extra={"requeued": requeue, "gave_up": gave_up})
    return {"requeued": requeue, "gave_up": gave_up}


# ------------------------------
# Celery Tasks
# ------------------------------
@app.task(name="tasks.extract_interview")
def extract_interview(job_id: int) -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        return process_extraction_job(db, job_id, get_extractor())
    finally:
        db.close()


@app.task(name="tasks.extract_manual_questions")
def extract_manual_questions(interview_id: int) -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        return derive_manual_questions(db, interview_id, get_extractor())
    finally:
        db.close()


@app.task(name="tasks.requeue_stale_extractions")
def requeue_stale_extractions() -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        return sweep_stale_jobs(db, dispatch=extract_interview.delay)
    finally:
        db.close()
