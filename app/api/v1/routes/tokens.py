from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.tokens import CreateTokenRequest, CreateTokenResponse, TokenResponse, TokenStatusResponse
from app.services import token_store
from app.services.apk_service import require_current_apk
from app.services.heartbeat import enrollment_summary
from app.services.provisioning_payload import build_provisioning_payload

router = APIRouter()


@router.post("/enrollment-tokens", response_model=CreateTokenResponse, status_code=status.HTTP_201_CREATED)
async def create_enrollment_token(
    request: CreateTokenRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """
    Issue a single-use enrollment token and the QR provisioning payload for it.

    Errors:
        - 400 INVALID_ARGUMENT: ttl_seconds out of bounds
        - 404 NOT_FOUND: policy or company user missing or not owned by the caller
        - 412 PRECONDITION_FAILED: no DPC APK uploaded yet
    """
    token = token_store.create_token(
        db, operator_id, request.policy_id, request.ttl_seconds, company_user_id=request.company_user_id
    )
    payload = build_provisioning_payload(token, require_current_apk(db))
    return CreateTokenResponse(
        token=TokenResponse.model_validate(token),
        provisioning_payload=payload,
    )


@router.get("/enrollment-tokens", response_model=List[TokenResponse])
async def list_enrollment_tokens(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return token_store.list_tokens(db, operator_id)


@router.get("/enrollment-tokens/{token_id}/status", response_model=TokenStatusResponse)
async def enrollment_token_status(
    token_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Polled by the QR screen until a device registers with the token."""
    token, enrollment = token_store.token_status(db, token_id, operator_id)
    return TokenStatusResponse(
        used=token.used,
        used_at=token.used_at,
        enrollment=enrollment_summary(enrollment) if enrollment else None,
    )


@router.delete("/enrollment-tokens/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment_token(
    token_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    token_store.delete_token(db, token_id, operator_id)
