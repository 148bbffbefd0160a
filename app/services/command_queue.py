"""
Asynchronous command queue between the console and device clients.

State machine:

    pending --> executing --> completed
    pending --> executing --> failed
    pending --> completed | failed      (instant commands skip executing)
    pending --> failed                  (operator cancel)

Nothing leaves completed or failed. Every transition is a conditional UPDATE
on the current status, so concurrent or retried reports can't move a command
backwards; re-reporting the status a command already has is a no-op.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.db.models import CommandStatus, DeviceCommand, DeviceEnrollment, utcnow
from app.services.device_registry import get_owned_enrollment

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "Cancelled by user"

# Allowed source states for each target state
_TRANSITIONS = {
    CommandStatus.EXECUTING: (CommandStatus.PENDING,),
    CommandStatus.COMPLETED: (CommandStatus.PENDING, CommandStatus.EXECUTING),
    CommandStatus.FAILED: (CommandStatus.PENDING, CommandStatus.EXECUTING),
}


def create_command(
    db: Session,
    device_id: str,
    command_type: str,
    parameters: Optional[Dict[str, Any]],
    operator_id: str,
    now: Optional[datetime] = None,
) -> DeviceCommand:
    """Queue a command for one of the operator's devices. Starts as pending."""
    get_owned_enrollment(db, device_id, operator_id)

    command = DeviceCommand(
        device_id=device_id,
        command_type=command_type,
        parameters=parameters or {},
        status=CommandStatus.PENDING,
        created_at=now or utcnow(),
    )
    db.add(command)
    db.commit()
    db.refresh(command)

    logger.info(f"Queued {command_type} command {command.id} for device {device_id}")
    return command


def list_pending(db: Session, device_id: str) -> List[DeviceCommand]:
    """Pending commands for a device, oldest first."""
    return (
        db.query(DeviceCommand)
        .filter(DeviceCommand.device_id == device_id, DeviceCommand.status == CommandStatus.PENDING)
        .order_by(DeviceCommand.id.asc())
        .all()
    )


def has_pending(db: Session, device_id: str, command_type: str) -> bool:
    return (
        db.query(DeviceCommand)
        .filter(
            DeviceCommand.device_id == device_id,
            DeviceCommand.command_type == command_type,
            DeviceCommand.status == CommandStatus.PENDING,
        )
        .first()
        is not None
    )


def update_status(
    db: Session,
    command_id: int,
    new_status: CommandStatus,
    error: Optional[str] = None,
    device_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DeviceCommand:
    """
    Apply a device-reported status.

    `device_id` scopes the lookup to the reporting enrollment; a command owned
    by another device is reported as not found.

    Raises:
        NotFoundError: unknown command (or not this device's)
        InvalidStateError: transition not allowed from the current status
    """
    new_status = CommandStatus(new_status)
    if new_status not in _TRANSITIONS:
        raise InvalidStateError(f"Devices cannot set status '{new_status.value}'")

    query = db.query(DeviceCommand).filter(DeviceCommand.id == command_id)
    if device_id is not None:
        query = query.filter(DeviceCommand.device_id == device_id)
    command = query.first()
    if not command:
        raise NotFoundError("Command", str(command_id))

    if command.status == new_status:
        logger.debug(f"Command {command_id} already {new_status.value}, ignoring repeat report")
        return command

    now = now or utcnow()
    values: Dict[str, Any] = {"status": new_status, "error": error}
    if new_status == CommandStatus.EXECUTING:
        values["executed_at"] = now
    else:
        values["completed_at"] = now

    result = db.execute(
        update(DeviceCommand)
        .where(DeviceCommand.id == command_id, DeviceCommand.status.in_(_TRANSITIONS[new_status]))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(command)

    if result.rowcount == 0:
        if command.status == new_status:
            # Lost a race against an identical report
            return command
        raise InvalidStateError(
            f"Cannot move command from '{command.status.value}' to '{new_status.value}'",
            details={"current_status": command.status.value},
        )

    log = logger.warning if new_status == CommandStatus.FAILED else logger.info
    log(f"Command {command_id} ({command.command_type}) on {command.device_id} -> {new_status.value}"
        + (f": {error}" if error else ""))
    return command


def _get_owned_command(db: Session, command_id: int, operator_id: str) -> DeviceCommand:
    command = db.query(DeviceCommand).filter(DeviceCommand.id == command_id).first()
    if not command:
        raise NotFoundError("Command", str(command_id))
    owner = (
        db.query(DeviceEnrollment.owner_id)
        .filter(DeviceEnrollment.device_id == command.device_id)
        .scalar()
    )
    if owner != operator_id:
        raise UnauthorizedError("Command targets a device of another operator")
    return command


def cancel_command(db: Session, command_id: int, operator_id: str, now: Optional[datetime] = None) -> DeviceCommand:
    """Withdraw a command the device has not picked up yet."""
    command = _get_owned_command(db, command_id, operator_id)

    result = db.execute(
        update(DeviceCommand)
        .where(DeviceCommand.id == command_id, DeviceCommand.status == CommandStatus.PENDING)
        .values(status=CommandStatus.FAILED, error=CANCELLED_ERROR, completed_at=now or utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(command)

    if result.rowcount == 0:
        raise InvalidStateError(
            "Can only cancel pending commands",
            details={"current_status": command.status.value},
        )

    logger.info(f"Cancelled command {command_id} for device {command.device_id}")
    return command


def command_history(
    db: Session,
    device_id: str,
    operator_id: str,
    limit: Optional[int] = None,
) -> List[DeviceCommand]:
    """Most recent first."""
    get_owned_enrollment(db, device_id, operator_id)
    return (
        db.query(DeviceCommand)
        .filter(DeviceCommand.device_id == device_id)
        .order_by(DeviceCommand.id.desc())
        .limit(limit or settings.command_history_limit)
        .all()
    )


def cleanup_commands(
    db: Session,
    older_than_days: Optional[int] = None,
    operator_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Delete completed commands finished before the cutoff.

    Failed commands are kept so failure history survives. With `operator_id`
    only that operator's devices are swept.
    """
    days = settings.command_retention_days if older_than_days is None else older_than_days
    cutoff = (now or utcnow()) - timedelta(days=days)

    stmt = delete(DeviceCommand).where(
        DeviceCommand.status == CommandStatus.COMPLETED,
        DeviceCommand.completed_at < cutoff,
    )
    if operator_id is not None:
        owned = select(DeviceEnrollment.device_id).where(DeviceEnrollment.owner_id == operator_id)
        stmt = stmt.where(DeviceCommand.device_id.in_(owned))

    result = db.execute(stmt.execution_options(synchronize_session=False))
    db.commit()

    logger.info(f"Command cleanup removed {result.rowcount} completed command(s) older than {days} day(s)")
    return result.rowcount
