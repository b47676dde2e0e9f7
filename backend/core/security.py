# backend/core/security.py
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from passlib.context import CryptContext

from core.config import settings


# TEST_PLAINTEXT_PASSWORDS=1 skips the hashing backend so tests stay fast and deterministic
TEST_PLAINTEXT = os.getenv("TEST_PLAINTEXT_PASSWORDS", "0") == "1"

if TEST_PLAINTEXT:
    def get_password_hash(password: str) -> str:
        return f"plain::{password}"

    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return hashed_password == f"plain::{plain_password}"
else:
    pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            return False


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    exp = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(subject), "exp": exp}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT. Raises JWTError on invalid/expired tokens;
    the auth dependency turns that into a 401.
    """
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        options={"verify_aud": False},
    )
