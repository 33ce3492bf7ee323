"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is driven by environment variables."""

    # API key
    panelsync_api_key: str = ""

    # Logging
    panelsync_log_level: str = "INFO"
    panelsync_log_json: bool = False

    # Default DirectAdmin server (registered when the host is set)
    directadmin_server_id: str = "default"
    directadmin_host: str = ""
    directadmin_port: int = 2222
    directadmin_username: str = "admin"
    directadmin_password: str = ""
    directadmin_use_ssl: bool = True
    directadmin_verify_tls: bool = True

    # Extra server records as a JSON list of objects
    panelsync_servers_json: str = ""

    # Transport
    directadmin_request_timeout_seconds: float = 10.0

    # Retry schedules (seconds)
    package_update_attempts: int = 4
    package_update_delays: list[float] = Field(default_factory=lambda: [1.0, 3.0, 5.0])
    package_delete_attempts: int = 3
    package_delete_delays: list[float] = Field(default_factory=lambda: [1.0, 3.0, 5.0])
    email_attempts: int = 3
    email_delay_seconds: float = 1.0
    user_create_reset_delay_seconds: float = 2.5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton – import this from anywhere
settings = Settings()
