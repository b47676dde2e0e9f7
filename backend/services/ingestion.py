# backend/services/ingestion.py
from __future__ import annotations

import logging
from typing import Any, Optional

from kombu.exceptions import OperationalError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import AppError, CompanyNotFound, PersistenceError
from db.models import Company, Interview, ProcessStatus, TEXT_SOURCES
from schemas.interview import AIInterviewCreate, ManualInterviewCreate
from services.company_resolver import get_unknown_company, resolve_or_create
from services.content_resolver import ContentResolver
from services.interview_store import build_metadata, create_interview, create_job
from tasks.extraction_tasks import extract_interview, extract_manual_questions

log = logging.getLogger(__name__)


def _dispatch(task: Any, *args) -> Optional[str]:
    """Enqueue a Celery task; a broker outage is logged, never raised."""
    try:
        return task.delay(*args).id
    except OperationalError:
        log.exception("failed to enqueue task", extra={"task": task.name, "task_args": list(args)})
        return None


def create_manual_interview(db: Session, owner_id: int, payload: ManualInterviewCreate) -> Interview:
    """
    Persist a caller-described interview as success right away, then queue the
    best-effort question derivation.
    """
    try:
        if payload.company_id is not None:
            company = (
                db.query(Company)
                .filter(Company.id == payload.company_id, Company.user_id == owner_id)
                .first()
            )
            if company is None:
                raise CompanyNotFound("company not found", {"company_id": payload.company_id})
            company_id = company.id
        else:
            company_id = resolve_or_create(db, owner_id, payload.company_name)

        interview = create_interview(
            db,
            owner_id=owner_id,
            company_id=company_id,
            source=payload.source,
            raw_input=payload.raw_input,
            status=ProcessStatus.success,
            metadata=build_metadata(payload.title, payload.raw_input),
            position=payload.position.strip(),
            no_of_round=payload.no_of_round,
            location=(payload.location or "").strip() or None,
        )
        db.commit()
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("failed to create manual interview", extra={"owner_id": owner_id})
        raise PersistenceError("failed to create interview") from e

    db.refresh(interview)
    _dispatch(extract_manual_questions, interview.id)
    return interview


def submit_for_extraction(
    db: Session,
    owner_id: int,
    payload: AIInterviewCreate,
    resolver: ContentResolver,
    user_agent: Optional[str] = None,
) -> dict:
    """
    Resolve the content (fetching it for link sources), record a queued
    extraction job and hand it to the worker pool. FetchError propagates
    before anything is written.
    """
    title = ""
    if payload.source in TEXT_SOURCES:
        content = payload.raw_input
    else:
        resolved = resolver.fetch(payload.raw_input.strip(), payload.source, user_agent)
        content, title = resolved.content, resolved.title

    # raises SentinelCompanyMissing; the worker needs it for the failure path
    get_unknown_company(db, owner_id)

    metadata = build_metadata(title, content)
    try:
        job = create_job(
            db,
            owner_id=owner_id,
            source=payload.source,
            raw_input=payload.raw_input,
            content=content,
            metadata=metadata,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("failed to record extraction job", extra={"owner_id": owner_id})
        raise PersistenceError("failed to queue interview extraction") from e

    job_id = job.id
    task_id = _dispatch(extract_interview, job_id)
    if task_id:
        try:
            job.task_id = task_id
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            log.exception("failed to store task id", extra={"job_id": job_id})

    log.info("extraction queued", extra={"job_id": job_id, "task_id": task_id, "source": payload.source.value})
    return {"queued": True, "job_id": job_id, "task_id": task_id, "metadata": metadata}
