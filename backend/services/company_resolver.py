# backend/services/company_resolver.py
"""
Owner-scoped company lookup.

Company names are stored normalized (trimmed + lowercased) and are unique per
owner through the uq_companies_user_name constraint. Creation goes through a
single INSERT ... ON CONFLICT DO NOTHING followed by a lookup, so two requests
racing on the same new name end up with the same row.

Callers own the transaction: nothing here commits.
"""
from __future__ import annotations

import logging
import re

from sqlalchemy import text
from sqlalchemy.orm import Session

from core.exceptions import PersistenceError, SentinelCompanyMissing
from db.models import SHORT_TEXT_LEN, Company

log = logging.getLogger(__name__)

UNKNOWN_COMPANY_NAME = "unknown company"
UNKNOWN_COMPANY_SLUG = "unknown-company"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_company_name(name: str | None) -> str:
    return (name or "").strip().lower()[:SHORT_TEXT_LEN].strip()


def slugify(name: str | None) -> str:
    """slugify("Google Inc.") -> "google-inc"; anything without letters/digits -> "unknown-company"."""
    slug = _NON_ALNUM.sub("-", (name or "").lower()).strip("-")
    return slug or UNKNOWN_COMPANY_SLUG


def _upsert(db: Session, owner_id: int, name: str, slug: str) -> int:
    params = {"uid": owner_id, "name": name, "slug": slug}
    db.execute(
        text("""
            INSERT INTO companies (user_id, name, slug)
            VALUES (:uid, :name, :slug)
            ON CONFLICT (user_id, name) DO NOTHING
        """),
        params,
    )
    company_id = db.execute(
        text("SELECT id FROM companies WHERE user_id = :uid AND name = :name"),
        params,
    ).scalar()
    if company_id is None:
        raise PersistenceError("company upsert returned no row", {"owner_id": owner_id, "name": name})
    return int(company_id)


def get_unknown_company(db: Session, owner_id: int) -> Company:
    company = (
        db.query(Company)
        .filter(Company.user_id == owner_id, Company.name == UNKNOWN_COMPANY_NAME)
        .first()
    )
    if company is None:
        raise SentinelCompanyMissing(
            "unknown company is not provisioned for this user", {"owner_id": owner_id}
        )
    return company


def ensure_unknown_company(db: Session, owner_id: int) -> int:
    """Provision the owner's fallback company (signup)."""
    return _upsert(db, owner_id, UNKNOWN_COMPANY_NAME, UNKNOWN_COMPANY_SLUG)


def resolve_or_create(db: Session, owner_id: int, name: str | None) -> int:
    """
    Return the id of the owner's company called `name`, creating it if needed.
    A blank name resolves to the owner's unknown company.
    """
    normalized = normalize_company_name(name)
    if not normalized:
        return get_unknown_company(db, owner_id).id

    company_id = _upsert(db, owner_id, normalized, slugify(normalized))
    log.debug("resolved company", extra={"owner_id": owner_id, "company": normalized, "company_id": company_id})
    return company_id
