"""
Superadmin API Endpoints for tenant management.

Provides REST endpoints for:
- Companies CRUD, plan updates and hard deletion
- Creating console users for a company

All endpoints require a superadmin session.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.dependencies import CurrentSuperadmin, PatchRequest, get_companies, get_users, unwrap
from api.serializers import company_to_dict, user_to_dict
from booking.repositories import CompanyRepository, UserRepository
from database.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/superadmin", tags=["superadmin"])

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# =============================================================================
# Companies
# =============================================================================


class CreateCompanyRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=100)
    logo_url: str | None = None
    primary_color: str | None = Field(None, pattern=COLOR_PATTERN)
    secondary_color: str | None = Field(None, pattern=COLOR_PATTERN)
    plan: str | None = Field(None, max_length=50)
    plan_value: Decimal | None = Field(None, ge=0)
    plan_expiry_date: datetime | None = None
    is_active: bool = True


class UpdateCompanyRequest(PatchRequest):
    NOT_NULL = frozenset({"name", "slug", "is_active"})

    name: str | None = Field(None, min_length=1, max_length=200)
    slug: str | None = Field(None, min_length=1, max_length=100)
    logo_url: str | None = None
    primary_color: str | None = Field(None, pattern=COLOR_PATTERN)
    secondary_color: str | None = Field(None, pattern=COLOR_PATTERN)
    is_active: bool | None = None


class UpdatePlanRequest(BaseModel):
    plan: str | None = Field(None, max_length=50)
    plan_value: Decimal | None = Field(None, ge=0)
    plan_expiry_date: datetime | None = None


@router.get("/companies")
async def list_companies(
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
    is_active: bool | None = None,
):
    """List companies, newest first."""
    items = unwrap(await companies.fetch_all(is_active=is_active))
    return {"items": [company_to_dict(c) for c in items], "total": len(items)}


@router.get("/companies/{company_id}")
async def get_company(
    company_id: UUID,
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
):
    """Get a single company by ID."""
    return company_to_dict(unwrap(await companies.fetch_by_id(company_id)))


@router.post("/companies", status_code=status.HTTP_201_CREATED)
async def create_company(
    request: CreateCompanyRequest,
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
):
    """Create a company. 409 when the slug is taken."""
    company = unwrap(await companies.create(request.model_dump()))
    logger.info(
        f"Company {company.slug} created by {current_user.user.email}",
        extra={"company_id": company.id},
    )
    return company_to_dict(company)


@router.put("/companies/{company_id}")
async def update_company(
    company_id: UUID,
    request: UpdateCompanyRequest,
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
):
    """Update only the fields present in the body."""
    changes = request.model_dump(exclude_unset=True)
    return company_to_dict(unwrap(await companies.update(company_id, changes)))


@router.put("/companies/{company_id}/plan")
async def update_company_plan(
    company_id: UUID,
    request: UpdatePlanRequest,
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
):
    """Replace plan type, value and expiry date."""
    company = unwrap(
        await companies.update_plan(
            company_id,
            plan=request.plan,
            plan_value=request.plan_value,
            plan_expiry_date=request.plan_expiry_date,
        )
    )
    return company_to_dict(company)


@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: UUID,
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
):
    """Delete a company and everything it owns."""
    unwrap(await companies.delete(company_id))
    logger.warning(f"Company deleted by {current_user.user.email}", extra={"company_id": company_id})


# =============================================================================
# Users
# =============================================================================


class CreateCompanyUserRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole = UserRole.ADMIN
    auth_id: str | None = None


@router.post("/companies/{company_id}/users", status_code=status.HTTP_201_CREATED)
async def create_company_user(
    company_id: UUID,
    request: CreateCompanyUserRequest,
    current_user: CurrentSuperadmin,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
    users: Annotated[UserRepository, Depends(get_users)],
):
    """Create a console user for a company (tipo_usuario=admin)."""
    unwrap(await companies.fetch_by_id(company_id))

    user = unwrap(
        await users.create_for_company(
            email=request.email,
            name=request.name,
            company_id=company_id,
            role=request.role,
            auth_id=request.auth_id,
        )
    )
    return user_to_dict(user)
