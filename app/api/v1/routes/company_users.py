from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.company_users import CompanyUserRequest, CompanyUserResponse
from app.services import company_user_service

router = APIRouter()


@router.post("/company-users", response_model=CompanyUserResponse, status_code=status.HTTP_201_CREATED)
async def create_company_user(
    request: CompanyUserRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """
    Errors:
        - 409 INVALID_STATE: the caller already has a company user with this email
    """
    return company_user_service.create_company_user(db, operator_id, request)


@router.get("/company-users", response_model=List[CompanyUserResponse])
async def list_company_users(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return company_user_service.list_company_users(db, operator_id)


@router.get("/company-users/{company_user_id}", response_model=CompanyUserResponse)
async def get_company_user(
    company_user_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return company_user_service.get_owned_company_user(db, company_user_id, operator_id)


@router.put("/company-users/{company_user_id}", response_model=CompanyUserResponse)
async def update_company_user(
    company_user_id: str,
    request: CompanyUserRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return company_user_service.update_company_user(db, company_user_id, operator_id, request)


@router.delete("/company-users/{company_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company_user(
    company_user_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """
    Errors:
        - 409 INVALID_STATE: devices are still assigned to this company user
    """
    company_user_service.delete_company_user(db, company_user_id, operator_id)
