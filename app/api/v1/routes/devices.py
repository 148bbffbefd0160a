from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic.alias_generators import to_camel
import logging

from app.api.deps import get_current_enrollment
from app.db.session import get_db
from app.db.models import CommandStatus, DeviceEnrollment
from app.schemas.commands import CommandStatusUpdate, PendingCommand, PendingCommandsResponse
from app.schemas.devices import (
    DevicePingIntervalRequest,
    DevicePolicyResponse,
    HeartbeatResponse,
    ProvisionRequest,
    ProvisionResponse,
    RegisterDeviceRequest,
    RegisterDeviceResponse,
)
from app.schemas.policies import DevicePolicyDocument
from app.schemas.tokens import TokenValidation, ValidateTokenRequest
from app.core.config import settings
from app.core.errors import InvalidArgumentError, MissingFieldError
from app.core.logging_config import preview
from app.services import command_queue, device_registry, heartbeat, token_store
from app.services.identity_resolver import resolve_device

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_DESCRIPTOR_LENGTH = 200


@router.post("/validate-token", response_model=TokenValidation)
async def validate_enrollment_token(
    request: ValidateTokenRequest,
    db: Session = Depends(get_db)
):
    """Pre-authentication check used by the setup flow before provisioning."""
    return token_store.validate_token(db, request.enrollment_token)


@router.post("/provision", response_model=ProvisionResponse)
async def provision(
    request: ProvisionRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange an enrollment token for the device policy and server config.

    The token is consumed on behalf of the reported serial; the same device
    retrying after a dropped response is served again.
    """
    serial_number = request.device_info.serial_number.strip()
    if not serial_number:
        raise MissingFieldError("serialNumber")

    token = token_store.claim_token(db, request.enrollment_token, serial_number)
    logger.info(f"Provisioned {serial_number} with token {preview(token.token)}, policy {token.policy_id}")

    return ProvisionResponse(
        policy=DevicePolicyDocument.model_validate(token.policy),
        server_url=token.server_url,
        ping_interval=settings.default_ping_interval_minutes,
    )


@router.post("/register", response_model=RegisterDeviceResponse)
async def register_device(
    request: RegisterDeviceRequest,
    db: Session = Depends(get_db)
):
    """
    Register (or re-register) an enrollment and return its bearer token.

    Idempotent per serial number: repeated calls return the same token.
    """
    # Validate required fields
    for field_name in ("serial_number", "model", "manufacturer", "android_version"):
        if not getattr(request, field_name).strip():
            raise MissingFieldError(to_camel(field_name))

    for field_name in ("serial_number", "model", "manufacturer", "android_version", "brand"):
        value = getattr(request, field_name)
        if value and len(value) > MAX_DESCRIPTOR_LENGTH:
            raise InvalidArgumentError(f"{field_name} too long (max {MAX_DESCRIPTOR_LENGTH} chars)", field=field_name)

    serial_number = request.serial_number.strip()
    if request.ssa_id and serial_number == request.ssa_id.strip():
        logger.warning(f"Rejected registration: serial equals SSAID {preview(request.ssa_id)}")
        raise InvalidArgumentError("serialNumber must not equal ssaId; update the device client", field="serial_number")

    owner_id = None
    policy_id = None
    company_user_id = None
    if request.enrollment_token:
        token = token_store.claim_token(db, request.enrollment_token, serial_number)
        owner_id = token.owner_id
        policy_id = token.policy_id
        company_user_id = token.company_user_id
    elif request.policy_id:
        policy_id = device_registry.check_registration_policy(db, serial_number, request.policy_id)

    physical_device_id = resolve_device(
        db,
        brand=request.brand or request.manufacturer,
        model=request.model,
        manufacturer=request.manufacturer,
        ssa_id=request.ssa_id,
        serial_number=serial_number,
        build_fingerprint=request.build_fingerprint,
    )

    enrollment, _ = device_registry.register_or_update(
        db,
        serial_number=serial_number,
        model=request.model,
        manufacturer=request.manufacturer,
        android_version=request.android_version,
        is_device_owner=request.is_device_owner,
        android_id=request.android_id or request.ssa_id,
        policy_id=policy_id,
        owner_id=owner_id,
        company_user_id=company_user_id,
        physical_device_id=physical_device_id,
    )

    return RegisterDeviceResponse(
        device_id=enrollment.device_id,
        api_token=enrollment.api_token,
        policy_id=enrollment.policy_id,
        ping_interval=enrollment.ping_interval,
    )


@router.post("/heartbeat", response_model=HeartbeatResponse)
async def device_heartbeat(
    enrollment: DeviceEnrollment = Depends(get_current_enrollment),
    db: Session = Depends(get_db)
):
    return heartbeat.record_heartbeat(db, enrollment)


@router.get("/commands", response_model=PendingCommandsResponse)
async def pending_commands(
    enrollment: DeviceEnrollment = Depends(get_current_enrollment),
    db: Session = Depends(get_db)
):
    """Pending commands for the calling device, oldest first."""
    commands = command_queue.list_pending(db, enrollment.device_id)
    return PendingCommandsResponse(
        commands=[
            PendingCommand(
                command_id=command.id,
                action=command.command_type,
                parameters=command.parameters or {},
                created_at=command.created_at,
            )
            for command in commands
        ]
    )


@router.post("/commands/{command_id}/status")
async def report_command_status(
    command_id: int,
    request: CommandStatusUpdate,
    enrollment: DeviceEnrollment = Depends(get_current_enrollment),
    db: Session = Depends(get_db)
):
    command = command_queue.update_status(
        db,
        command_id,
        CommandStatus(request.status),
        error=request.error,
        device_id=enrollment.device_id,
    )
    return {"success": True, "commandId": command.id, "status": command.status.value}


@router.get("/policy", response_model=DevicePolicyResponse)
async def device_policy(
    enrollment: DeviceEnrollment = Depends(get_current_enrollment),
):
    """Currently assigned policy, or `policy: null` when none is assigned."""
    if not enrollment.policy:
        return DevicePolicyResponse(policy=None)
    return DevicePolicyResponse(policy=DevicePolicyDocument.model_validate(enrollment.policy))


@router.post("/ping-interval", response_model=HeartbeatResponse)
async def device_ping_interval(
    request: DevicePingIntervalRequest,
    enrollment: DeviceEnrollment = Depends(get_current_enrollment),
    db: Session = Depends(get_db)
):
    """Device-initiated cadence change, acknowledged like a heartbeat."""
    device_registry.update_ping_interval(db, enrollment, request.ping_interval)
    return heartbeat.record_heartbeat(db, enrollment)
