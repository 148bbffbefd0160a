"""
Heartbeat / check-in protocol.

Pull-only: the device calls in every `ping_interval` minutes, which is both
its liveness signal and its only chance to learn about new commands or a new
interval. Worst-case command latency is therefore one interval.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import ConnectionStatus, DeviceEnrollment, utcnow
from app.schemas.devices import HeartbeatResponse
from app.schemas.enrollments import EnrollmentResponse
from app.services.device_registry import update_heartbeat

logger = logging.getLogger(__name__)


def connection_status(enrollment: DeviceEnrollment, now: Optional[datetime] = None) -> ConnectionStatus:
    return enrollment.connection_status(settings.online_heartbeat_multiplier, now)


def record_heartbeat(db: Session, enrollment: DeviceEnrollment, now: Optional[datetime] = None) -> HeartbeatResponse:
    """Stamp liveness and hand back the interval the device should use next."""
    now = now or utcnow()
    update_heartbeat(db, enrollment, now)
    logger.debug(f"Heartbeat from {enrollment.device_id}, next in {enrollment.ping_interval} min")
    return HeartbeatResponse(
        status=connection_status(enrollment, now).value,
        ping_interval=enrollment.ping_interval,
        server_time=now,
    )


def delivery_window_minutes(enrollment: DeviceEnrollment) -> int:
    """Upper bound before a newly queued command reaches the device."""
    return enrollment.ping_interval


def enrollment_summary(enrollment: DeviceEnrollment, now: Optional[datetime] = None) -> EnrollmentResponse:
    return EnrollmentResponse(
        device_id=enrollment.device_id,
        owner_id=enrollment.owner_id,
        model=enrollment.model,
        manufacturer=enrollment.manufacturer,
        android_version=enrollment.android_version,
        is_device_owner=enrollment.is_device_owner,
        policy_id=enrollment.policy_id,
        company_user_id=enrollment.company_user_id,
        ping_interval=enrollment.ping_interval,
        last_heartbeat=enrollment.last_heartbeat,
        registered_at=enrollment.registered_at,
        status=connection_status(enrollment, now).value,
        physical_device_id=enrollment.physical_device_id,
    )
