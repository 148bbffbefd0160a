from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.commands import CommandResponse, WipeCommand, command_parameters
from app.schemas.enrollments import (
    AssignCompanyUserRequest,
    AssignPolicyRequest,
    DeleteEnrollmentResponse,
    EnrollmentResponse,
    PingIntervalRequest,
)
from app.core.errors import InvalidStateError
from app.services import command_queue, device_registry
from app.services.heartbeat import enrollment_summary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/enrollments", response_model=List[EnrollmentResponse])
async def list_enrollments(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Operator's devices, newest first, with online/offline derived from heartbeat age."""
    return [enrollment_summary(e) for e in device_registry.list_enrollments(db, operator_id)]


@router.get("/enrollments/{device_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    device_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return enrollment_summary(device_registry.get_owned_enrollment(db, device_id, operator_id))


@router.put("/enrollments/{device_id}/policy", response_model=EnrollmentResponse)
async def assign_policy(
    device_id: str,
    request: AssignPolicyRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """The device applies the new policy on its next policy fetch."""
    enrollment = device_registry.assign_policy(db, device_id, request.policy_id, operator_id)
    return enrollment_summary(enrollment)


@router.put("/enrollments/{device_id}/company-user", response_model=EnrollmentResponse)
async def assign_company_user(
    device_id: str,
    request: AssignCompanyUserRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    enrollment = device_registry.assign_company_user(db, device_id, request.company_user_id, operator_id)
    return enrollment_summary(enrollment)


@router.put("/enrollments/{device_id}/ping-interval", response_model=EnrollmentResponse)
async def update_ping_interval(
    device_id: str,
    request: PingIntervalRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Takes effect when the device reads it back on its next heartbeat."""
    enrollment = device_registry.get_owned_enrollment(db, device_id, operator_id)
    device_registry.update_ping_interval(db, enrollment, request.ping_interval)
    return enrollment_summary(enrollment)


@router.delete("/enrollments/{device_id}", response_model=DeleteEnrollmentResponse)
async def delete_enrollment(
    device_id: str,
    wipe: bool = Query(False, description="Queue a factory reset instead of deleting right away"),
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """
    Remove an enrollment, or with `wipe=true` queue a wipe command and keep
    the record until a later plain delete.

    Errors:
        - 403 UNAUTHORIZED: enrollment belongs to another operator
        - 404 NOT_FOUND: unknown device id
        - 409 INVALID_STATE: a wipe is already pending
    """
    if not wipe:
        device_registry.delete_enrollment(db, device_id, operator_id)
        return DeleteEnrollmentResponse(deleted=True)

    device_registry.get_owned_enrollment(db, device_id, operator_id)
    wipe_command = WipeCommand()
    if command_queue.has_pending(db, device_id, wipe_command.type):
        raise InvalidStateError("A wipe command is already pending for this device")

    command = command_queue.create_command(
        db, device_id, wipe_command.type, command_parameters(wipe_command), operator_id
    )
    logger.warning(f"Wipe queued for {device_id} by {operator_id} (command {command.id})")
    return DeleteEnrollmentResponse(deleted=False, wipe_command_id=command.id)


@router.get("/enrollments/{device_id}/commands", response_model=List[CommandResponse])
async def command_history(
    device_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Most recent first."""
    return command_queue.command_history(db, device_id, operator_id, limit)
