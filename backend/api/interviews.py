# backend/api/interviews.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from api.deps import get_content_resolver, get_current_user, get_db
from core.exceptions import AppError, CompanyNotFound, FetchError, PersistenceError, SentinelCompanyMissing
from db.models import ExtractionJob, Interview, InterviewSource, ProcessStatus
from schemas.interview import (
    AIInterviewCreate,
    DeleteInterviewsIn,
    ExtractionAccepted,
    ExtractionJobOut,
    FieldCount,
    InterviewDetailOut,
    InterviewListOut,
    InterviewOut,
    InterviewPatch,
    InterviewStatsOut,
    ManualInterviewCreate,
    QuestionOut,
)
from services.content_resolver import ContentResolver
from services.ingestion import create_manual_interview, submit_for_extraction
from services.interview_store import apply_interview_patch

router = APIRouter(prefix="/interview", tags=["interview"])
log = logging.getLogger(__name__)


# ---------------------------
# Ingestion
# ---------------------------

@router.post("", response_model=ExtractionAccepted, status_code=202)
def create_interview_ai(
    payload: AIInterviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    resolver: ContentResolver = Depends(get_content_resolver),
):
    try:
        return submit_for_extraction(
            db,
            owner_id=user.id,
            payload=payload,
            resolver=resolver,
            user_agent=request.headers.get("user-agent"),
        )
    except FetchError as e:
        raise HTTPException(status_code=400, detail=f"fetch failed: {e.message}")
    except SentinelCompanyMissing as e:
        log.error("unknown company missing", extra={"user_id": user.id})
        raise HTTPException(status_code=500, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.post("/manual", response_model=InterviewOut, status_code=201)
def create_interview_manual(
    payload: ManualInterviewCreate,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    try:
        interview = create_manual_interview(db, owner_id=user.id, payload=payload)
    except CompanyNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return InterviewOut.from_row(interview)


@router.get("/jobs/{job_id}", response_model=ExtractionJobOut)
def get_extraction_job(job_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    job = (
        db.query(ExtractionJob)
        .filter(ExtractionJob.id == job_id, ExtractionJob.user_id == user.id)
        .first()
    )
    if job is None:
        raise HTTPException(status_code=404, detail="job not found")
    return ExtractionJobOut.from_row(job)


# ---------------------------
# Read / delete
# ---------------------------

@router.get("", response_model=InterviewListOut)
def list_interviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    source: Optional[InterviewSource] = None,
    process_status: Optional[ProcessStatus] = None,
    company_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    q = db.query(Interview).filter(Interview.user_id == user.id)
    if source is not None:
        q = q.filter(Interview.source == source)
    if process_status is not None:
        q = q.filter(Interview.process_status == process_status)
    if company_id is not None:
        q = q.filter(Interview.company_id == company_id)

    total = q.count()
    rows = (
        q.options(joinedload(Interview.company))
        .order_by(Interview.created_at.desc(), Interview.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return InterviewListOut(
        data=[InterviewOut.from_row(r) for r in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/stats", response_model=InterviewStatsOut)
def interview_stats(db: Session = Depends(get_db), user=Depends(get_current_user)):
    def _counts(col, members):
        rows = (
            db.query(col, func.count(Interview.id))
            .filter(Interview.user_id == user.id)
            .group_by(col)
            .all()
        )
        seen = {getattr(k, "value", k): n for k, n in rows}
        return [FieldCount(field=m.value, count=int(seen.get(m.value, 0))) for m in members]

    return InterviewStatsOut(
        source_stats=_counts(Interview.source, list(InterviewSource)),
        process_status_stats=_counts(Interview.process_status, list(ProcessStatus)),
    )


@router.get("/{interview_id}", response_model=InterviewDetailOut)
def get_interview(interview_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    interview = (
        db.query(Interview)
        .options(joinedload(Interview.company))
        .filter(Interview.id == interview_id, Interview.user_id == user.id)
        .first()
    )
    if interview is None:
        raise HTTPException(status_code=404, detail="interview not found")
    return InterviewDetailOut(
        interview=InterviewOut.from_row(interview),
        questions=[QuestionOut.from_row(q) for q in interview.questions],
    )


@router.patch("/{interview_id}", response_model=InterviewOut)
def patch_interview(
    interview_id: int,
    payload: InterviewPatch,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    interview = (
        db.query(Interview)
        .filter(Interview.id == interview_id, Interview.user_id == user.id)
        .first()
    )
    if interview is None:
        raise HTTPException(status_code=404, detail="interview not found")

    try:
        apply_interview_patch(db, interview, user.id, payload.model_dump(exclude_unset=True))
        db.commit()
    except CompanyNotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=e.message)
    except (SQLAlchemyError, AppError):
        db.rollback()
        log.exception("failed to update interview", extra={"interview_id": interview_id})
        raise HTTPException(status_code=500, detail="failed to update interview")

    db.refresh(interview)
    return InterviewOut.from_row(interview)


@router.delete("")
def delete_interviews(payload: DeleteInterviewsIn, db: Session = Depends(get_db), user=Depends(get_current_user)):
    ids = sorted(set(payload.interview_ids))
    rows = (
        db.query(Interview)
        .filter(Interview.id.in_(ids), Interview.user_id == user.id)
        .all()
    )
    if len(rows) != len(ids):
        raise HTTPException(status_code=404, detail="one or more interviews not found")

    db.query(ExtractionJob).filter(ExtractionJob.interview_id.in_(ids)).update(
        {ExtractionJob.interview_id: None}, synchronize_session=False
    )
    for row in rows:
        db.delete(row)
    db.commit()
    return {"ok": True, "deleted": len(rows)}
