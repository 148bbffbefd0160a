from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.db.session import get_db
from app.db.models import DeviceEnrollment
from app.core.config import settings
from app.core.errors import UnauthenticatedError
from app.services.device_registry import validate_bearer_token

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def get_current_enrollment(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> DeviceEnrollment:
    """
    FastAPI dependency authenticating a device by its bearer token.

    Every failure yields the same 401 so callers can't tell a missing token
    from an unknown one.

    Raises:
        UnauthenticatedError: header missing, malformed, or token unknown
    """
    token = None
    if authorization and authorization.startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX):].strip()

    enrollment = validate_bearer_token(db, token) if token else None
    if not enrollment:
        raise UnauthenticatedError("Invalid or missing API token")
    return enrollment


def get_current_operator(request: Request) -> str:
    """
    FastAPI dependency returning the operator id asserted by the identity provider.

    The gateway in front of the console authenticates the session and forwards
    the opaque subject in the configured header.
    """
    operator_id = (request.headers.get(settings.operator_id_header) or "").strip()
    if not operator_id or operator_id == settings.unassigned_owner_id:
        raise UnauthenticatedError("Operator session required")
    return operator_id
