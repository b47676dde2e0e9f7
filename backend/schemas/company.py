from typing import List

from pydantic import BaseModel


class CompanyListItem(BaseModel):
    company_id: int
    name: str
    slug: str
    total_interviews: int


class CompanyListOut(BaseModel):
    data: List[CompanyListItem]
    total: int


class CompanyDetailsOut(BaseModel):
    company_id: int
    name: str
    slug: str
    total_interviews: int
    avg_rounds: float


class CompanyName(BaseModel):
    company_id: int
    name: str
    slug: str


class CompanyNamesOut(BaseModel):
    data: List[CompanyName]
    total: int
    has_next: bool
