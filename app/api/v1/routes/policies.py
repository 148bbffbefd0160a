from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.policies import PolicyCreate, PolicyResponse, PolicyUpdate
from app.services import policy_service

router = APIRouter()


@router.post("/policies", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    request: PolicyCreate,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Create a policy. `is_default=true` demotes the operator's previous default."""
    return policy_service.create_policy(db, operator_id, request)


@router.get("/policies", response_model=List[PolicyResponse])
async def list_policies(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return policy_service.list_policies(db, operator_id)


@router.get("/policies/default", response_model=Optional[PolicyResponse])
async def get_default_policy(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return policy_service.get_default_policy(db, operator_id)


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return policy_service.get_owned_policy(db, policy_id, operator_id)


@router.patch("/policies/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: str,
    request: PolicyUpdate,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return policy_service.update_policy(db, policy_id, operator_id, request)


@router.delete("/policies/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(
    policy_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Fails with INVALID_STATE while any enrollment still uses the policy."""
    policy_service.delete_policy(db, policy_id, operator_id)
