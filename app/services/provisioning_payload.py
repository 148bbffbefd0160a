"""Android QR provisioning extras for a custom DPC."""
import json
import logging
from typing import Any, Dict
from urllib.parse import urlencode

from app.core.config import settings
from app.db.models import ApkVersion, EnrollmentToken

logger = logging.getLogger(__name__)

EXTRA_PREFIX = "android.app.extra."


def apk_download_url(token: EnrollmentToken) -> str:
    """Short, stable download URL; the server redirects to object storage."""
    return f"{token.server_url}/api/v1/apk/download?{urlencode({'token': token.token})}"


def build_provisioning_payload(token: EnrollmentToken, apk: ApkVersion) -> Dict[str, Any]:
    """
    Assemble the JSON the provisioning QR code encodes.

    Field names are fixed by the Android setup wizard; the admin extras
    bundle is what the DPC reads back after installation.
    """
    payload = {
        f"{EXTRA_PREFIX}PROVISIONING_DEVICE_ADMIN_COMPONENT_NAME":
            f"{settings.dpc_package_name}/{settings.dpc_admin_receiver}",
        f"{EXTRA_PREFIX}PROVISIONING_DEVICE_ADMIN_PACKAGE_NAME": settings.dpc_package_name,
        f"{EXTRA_PREFIX}PROVISIONING_DEVICE_ADMIN_PACKAGE_DOWNLOAD_LOCATION": apk_download_url(token),
        f"{EXTRA_PREFIX}PROVISIONING_DEVICE_ADMIN_SIGNATURE_CHECKSUM": apk.signature_checksum,
        f"{EXTRA_PREFIX}PROVISIONING_SKIP_ENCRYPTION": False,
        f"{EXTRA_PREFIX}PROVISIONING_ADMIN_EXTRAS_BUNDLE": {
            "server_url": token.server_url,
            "enrollment_token": token.token,
        },
    }

    size = len(json.dumps(payload))
    if size > settings.qr_payload_warn_bytes:
        logger.warning(
            f"Provisioning payload is {size} bytes, may be too large for the Android QR scanner "
            f"(recommended < {settings.qr_payload_warn_bytes})"
        )
    return payload
