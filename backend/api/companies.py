# backend/api/companies.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from api.deps import get_current_user, get_db
from db.models import Company, Interview
from schemas.company import CompanyDetailsOut, CompanyListItem, CompanyListOut, CompanyName, CompanyNamesOut
from services.company_resolver import normalize_company_name

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=CompanyListOut)
def list_companies(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort: str = Query("recent", pattern="^(recent|interviews|name)$"),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    """Companies that have at least one interview, with their interview counts."""
    total_col = func.count(Interview.id).label("total_interviews")
    base = (
        db.query(Company.id, Company.name, Company.slug, total_col)
        .join(Interview, Interview.company_id == Company.id)
        .filter(Company.user_id == user.id)
        .group_by(Company.id, Company.name, Company.slug)
    )
    order = {
        "recent": func.max(Interview.updated_at).desc(),
        "interviews": total_col.desc(),
        "name": Company.name.asc(),
    }[sort]

    total = base.count()
    rows = base.order_by(order, Company.id.asc()).offset(offset).limit(limit).all()
    return CompanyListOut(
        data=[
            CompanyListItem(company_id=r.id, name=r.name, slug=r.slug, total_interviews=r.total_interviews)
            for r in rows
        ],
        total=total,
    )


@router.get("/names", response_model=CompanyNamesOut)
def list_company_names(
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    """All of the caller's companies (including unused ones), for pickers."""
    q = db.query(Company).filter(Company.user_id == user.id)
    term = normalize_company_name(search)
    if term:
        q = q.filter(Company.name.contains(term, autoescape=True))
    total = q.count()
    rows = q.order_by(Company.name.asc(), Company.id.asc()).offset(offset).limit(limit).all()
    return CompanyNamesOut(
        data=[CompanyName(company_id=c.id, name=c.name, slug=c.slug) for c in rows],
        total=total,
        has_next=offset + len(rows) < total,
    )


@router.get("/{identifier}", response_model=CompanyDetailsOut)
def get_company(identifier: str, db: Session = Depends(get_db), user=Depends(get_current_user)):
    """
    `identifier` is a company id or a slug. Slugs are not unique per owner
    ("google inc" and "google inc." share one), so the id is the exact handle;
    a slug resolves to the oldest match.
    """
    owned = db.query(Company).filter(Company.user_id == user.id)
    company = None
    if identifier.isdigit():
        company = owned.filter(Company.id == int(identifier)).first()
    if company is None:
        company = owned.filter(Company.slug == identifier).order_by(Company.id.asc()).first()
    if company is None:
        raise HTTPException(status_code=404, detail="company not found")

    total, avg_rounds = (
        db.query(func.count(Interview.id), func.avg(func.coalesce(Interview.no_of_round, 0)))
        .filter(Interview.company_id == company.id)
        .one()
    )
    return CompanyDetailsOut(
        company_id=company.id,
        name=company.name,
        slug=company.slug,
        total_interviews=int(total or 0),
        avg_rounds=round(float(avg_rounds or 0), 1),
    )
