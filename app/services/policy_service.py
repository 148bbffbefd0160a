"""Policy CRUD scoped to the owning operator."""
import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.db.models import DeviceEnrollment, Policy, utcnow
from app.schemas.policies import PolicyCreate, PolicyUpdate

logger = logging.getLogger(__name__)

# Retries when a concurrent request claimed the default slot first
DEFAULT_SWAP_ATTEMPTS = 3


def get_owned_policy(db: Session, policy_id: str, operator_id: str) -> Policy:
    """
    Raises:
        NotFoundError: policy does not exist
        UnauthorizedError: policy belongs to another operator
    """
    policy = db.query(Policy).filter(Policy.id == policy_id).first()
    if not policy:
        raise NotFoundError("Policy", policy_id)
    if policy.owner_id != operator_id:
        raise UnauthorizedError("Policy belongs to another operator")
    return policy


def _clear_other_defaults(db: Session, operator_id: str, keep_policy_id: Optional[str]) -> None:
    stmt = update(Policy).where(Policy.owner_id == operator_id, Policy.is_default.is_(True))
    if keep_policy_id is not None:
        stmt = stmt.where(Policy.id != keep_policy_id)
    db.execute(stmt.values(is_default=False))


def create_policy(db: Session, operator_id: str, request: PolicyCreate) -> Policy:
    fields = request.model_dump()

    for attempt in range(DEFAULT_SWAP_ATTEMPTS):
        if request.is_default:
            _clear_other_defaults(db, operator_id, keep_policy_id=None)
        policy = Policy(owner_id=operator_id, **fields)
        db.add(policy)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Default policy swap for {operator_id} raced, retrying (attempt {attempt + 1})")
            continue
        db.refresh(policy)
        logger.info(f"Created policy {policy.id} '{policy.name}' for operator {operator_id} (default={policy.is_default})")
        return policy

    raise InvalidStateError("Could not set default policy due to concurrent updates")


def update_policy(db: Session, policy_id: str, operator_id: str, request: PolicyUpdate) -> Policy:
    updates = request.model_dump(exclude_unset=True)

    for attempt in range(DEFAULT_SWAP_ATTEMPTS):
        policy = get_owned_policy(db, policy_id, operator_id)
        if updates.get("is_default"):
            _clear_other_defaults(db, operator_id, keep_policy_id=policy_id)
        for key, value in updates.items():
            setattr(policy, key, value)
        policy.updated_at = utcnow()
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Default policy swap for {operator_id} raced, retrying (attempt {attempt + 1})")
            continue
        db.refresh(policy)
        logger.info(f"Updated policy {policy_id}: {sorted(updates)}")
        return policy

    raise InvalidStateError("Could not set default policy due to concurrent updates")


def list_policies(db: Session, operator_id: str) -> List[Policy]:
    return (
        db.query(Policy)
        .filter(Policy.owner_id == operator_id)
        .order_by(Policy.created_at.desc())
        .all()
    )


def get_default_policy(db: Session, operator_id: str) -> Optional[Policy]:
    return (
        db.query(Policy)
        .filter(Policy.owner_id == operator_id, Policy.is_default.is_(True))
        .first()
    )


def delete_policy(db: Session, policy_id: str, operator_id: str) -> None:
    """Delete a policy. Outstanding enrollment tokens bound to it go with it."""
    policy = get_owned_policy(db, policy_id, operator_id)

    in_use = db.query(DeviceEnrollment).filter(DeviceEnrollment.policy_id == policy_id).count()
    if in_use:
        raise InvalidStateError(
            f"Cannot delete policy: {in_use} device(s) are using it",
            details={"enrollments": in_use},
        )

    db.delete(policy)
    db.commit()
    logger.info(f"Deleted policy {policy_id} for operator {operator_id}")
