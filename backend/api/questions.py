# backend/api/questions.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.deps import get_current_user, get_db
from db.models import Interview, ProcessStatus, Question, QuestionType
from schemas.interview import QuestionCreate, QuestionOut, QuestionsByTypeOut, QuestionUpdate

router = APIRouter(prefix="/questions", tags=["questions"])
log = logging.getLogger(__name__)


def _owned_interview(db: Session, interview_id: int, user_id: int) -> Interview:
    interview = (
        db.query(Interview)
        .filter(Interview.id == interview_id, Interview.user_id == user_id)
        .first()
    )
    if interview is None:
        raise HTTPException(status_code=404, detail="interview not found")
    return interview


def _owned_question(db: Session, q_id: int, user_id: int) -> Question:
    q = (
        db.query(Question)
        .join(Interview, Interview.id == Question.interview_id)
        .filter(Question.id == q_id, Interview.user_id == user_id)
        .first()
    )
    if q is None:
        raise HTTPException(status_code=404, detail="question not found")
    return q


def _commit(db: Session, what: str, **ctx):
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception(f"failed to {what}", extra=ctx)
        raise HTTPException(status_code=500, detail=f"failed to {what}")


@router.post("", response_model=QuestionOut, status_code=201)
def create_question(payload: QuestionCreate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    interview = _owned_interview(db, payload.interview_id, user.id)
    # questions only hang off successfully processed interviews
    if interview.process_status != ProcessStatus.success:
        raise HTTPException(status_code=409, detail="interview was not processed successfully")

    q = Question(interview_id=interview.id, question=payload.question, type=payload.type)
    db.add(q)
    _commit(db, "create question", interview_id=interview.id)
    db.refresh(q)
    return QuestionOut.from_row(q)


@router.get("/{interview_id}", response_model=QuestionsByTypeOut)
def list_questions(interview_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    """Questions of one interview grouped by type."""
    interview = _owned_interview(db, interview_id, user.id)
    grouped = {t.value: [] for t in QuestionType}
    for q in interview.questions:
        grouped[QuestionType(q.type).value].append(QuestionOut.from_row(q))
    return QuestionsByTypeOut(interview_id=interview.id, total=len(interview.questions), questions=grouped)


@router.put("/{q_id}", response_model=QuestionOut)
def update_question(q_id: int, payload: QuestionUpdate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    q = _owned_question(db, q_id, user.id)
    if payload.question is not None:
        q.question = payload.question
    if payload.type is not None:
        q.type = payload.type
    _commit(db, "update question", q_id=q_id)
    db.refresh(q)
    return QuestionOut.from_row(q)


@router.delete("/{q_id}")
def delete_question(q_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    q = _owned_question(db, q_id, user.id)
    db.delete(q)
    _commit(db, "delete question", q_id=q_id)
    return {"ok": True}
