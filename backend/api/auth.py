# api/auth.py
import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api import deps
from core import security
from core.config import settings
from db import models as db_models
from models.user import UserCreate, UserOut
from services.company_resolver import ensure_unknown_company


router = APIRouter(prefix="/auth", tags=["auth"])
log = logging.getLogger(__name__)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginJSON(BaseModel):
    email: EmailStr
    password: str


def _issue_access_token(user: db_models.User) -> Token:
    access_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = security.create_access_token(subject=str(user.id), expires_delta=access_expires)
    return Token(access_token=access_token, expires_in=int(access_expires.total_seconds()))


def _authenticate(db: Session, email: str, password: str) -> db_models.User:
    user = db.query(db_models.User).filter(db_models.User.email == email.lower()).first()
    if not user or not security.verify_password(password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Incorrect email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


def register_user(db: Session, payload: UserCreate) -> db_models.User:
    """User row and its "unknown company" are created in the same transaction."""
    user = db_models.User(
        email=payload.email.lower(),
        full_name=payload.full_name,
        hashed_password=security.get_password_hash(payload.password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    ensure_unknown_company(db, user.id)
    db.commit()
    db.refresh(user)
    return user


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(payload: UserCreate, db: Session = Depends(deps.get_db)) -> Any:
    try:
        user = register_user(db, payload)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    log.info("user registered", extra={"user_id": user.id})
    return user


@router.post("/login", response_model=Token)
def login_form(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(deps.get_db),
) -> Any:
    """OAuth2 password flow for the Swagger Authorize dialog (username = email)."""
    user = _authenticate(db, email=form_data.username, password=form_data.password)
    return _issue_access_token(user)


@router.post("/login_json", response_model=Token)
def login_json(payload: LoginJSON, db: Session = Depends(deps.get_db)) -> Any:
    user = _authenticate(db, email=payload.email, password=payload.password)
    return _issue_access_token(user)


@router.get("/me", response_model=UserOut)
def read_myself(current_user: db_models.User = Depends(deps.get_current_user)):
    return current_user
