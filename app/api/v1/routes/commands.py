from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.commands import (
    CleanupRequest,
    CleanupResponse,
    CommandResponse,
    CreateCommandRequest,
    CreateCommandResponse,
    InstallApkCommand,
    UpdatePolicyCommand,
    command_parameters,
)
from app.services import application_catalog, command_queue, device_registry
from app.services.heartbeat import delivery_window_minutes

router = APIRouter()


@router.post("/commands", response_model=CreateCommandResponse, status_code=status.HTTP_201_CREATED)
async def create_command(
    request: CreateCommandRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """
    Queue a command for one of the operator's devices.

    There is no push channel: the device picks the command up on its next
    check-in, which `expected_within_minutes` reports.
    """
    command = request.command
    enrollment = device_registry.get_owned_enrollment(db, request.device_id, operator_id)

    if isinstance(command, UpdatePolicyCommand) and command.policy_id:
        enrollment = device_registry.assign_policy(db, request.device_id, command.policy_id, operator_id)

    if isinstance(command, InstallApkCommand) and command.application_id:
        application = application_catalog.get_owned_application(db, command.application_id, operator_id)
        command = InstallApkCommand(
            apk_url=application.storage_url,
            package_name=application.package_name,
            app_name=command.app_name or application.name,
        )

    queued = command_queue.create_command(
        db, enrollment.device_id, command.type, command_parameters(command), operator_id
    )
    return CreateCommandResponse(
        command_id=queued.id,
        status=queued.status.value,
        expected_within_minutes=delivery_window_minutes(enrollment),
    )


@router.post("/commands/cleanup", response_model=CleanupResponse)
async def cleanup_commands(
    request: CleanupRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Delete the operator's completed commands past retention. Failed ones are kept."""
    deleted = command_queue.cleanup_commands(db, request.older_than_days, operator_id=operator_id)
    return CleanupResponse(deleted=deleted)


@router.post("/commands/{command_id}/cancel", response_model=CommandResponse)
async def cancel_command(
    command_id: int,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Only pending commands can be cancelled; they end as failed."""
    return command_queue.cancel_command(db, command_id, operator_id)
