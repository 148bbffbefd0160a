"""Test utility functions."""
from typing import Dict, Optional

from app.core.config import settings

OPERATOR_ID = "operator-alice"
OTHER_OPERATOR_ID = "operator-bob"

CONSOLE = "/api/v1/console"


def operator_headers(operator_id: str) -> Dict[str, str]:
    return {settings.operator_id_header: operator_id}


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def create_register_data(
    serial_number: str = "SN-REG-0001",
    model: str = "Pixel 7",
    manufacturer: str = "Google",
    android_version: str = "14",
    enrollment_token: Optional[str] = None,
    ssa_id: Optional[str] = None,
    brand: Optional[str] = "google",
) -> dict:
    """Registration body as the device client sends it (camelCase)."""
    data = {
        "serialNumber": serial_number,
        "model": model,
        "manufacturer": manufacturer,
        "androidVersion": android_version,
        "brand": brand,
        "isDeviceOwner": True,
    }
    if enrollment_token is not None:
        data["enrollmentToken"] = enrollment_token
    if ssa_id is not None:
        data["ssaId"] = ssa_id
    return data
