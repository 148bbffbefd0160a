from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./mdm_console.db"
    environment: str = "development"

    # Public base URL handed to devices (snapshotted into enrollment tokens)
    server_url: str = "http://localhost:8000"

    # Enrollment tokens
    default_token_ttl_seconds: int = 3600
    min_token_ttl_seconds: int = 60
    max_token_ttl_seconds: int = 30 * 24 * 3600
    token_list_limit: int = 50

    # Heartbeat / check-in
    default_ping_interval_minutes: int = 15
    min_ping_interval_minutes: int = 1
    max_ping_interval_minutes: int = 180
    online_heartbeat_multiplier: int = 2  # online while heartbeat age <= multiplier * ping interval

    # Command queue
    command_history_limit: int = 50
    command_retention_days: int = 30

    # Enrollment ownership
    unassigned_owner_id: str = "unassigned"

    # Header set by the identity provider / gateway for operator calls
    operator_id_header: str = "X-Operator-Id"

    # DPC client provisioning
    dpc_package_name: str = "com.bbtec.mdm.client"
    dpc_admin_receiver: str = "com.bbtec.mdm.client.MdmDeviceAdminReceiver"
    apk_list_limit: int = 20
    qr_payload_warn_bytes: int = 4000  # Android scanners struggle above this

    @field_validator('server_url')
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Server URL must be absolute http(s); trailing slash is dropped."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("SERVER_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator('online_heartbeat_multiplier')
    @classmethod
    def validate_multiplier(cls, v: int) -> int:
        if v < 1:
            raise ValueError("online_heartbeat_multiplier must be at least 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_ignore_empty = True


settings = Settings()
