"""
Configuration for the illumos ZFS client.

Reads from environment variables (ILLUMOS_ prefix) with sensible defaults.
The home-directory lookups for the SSH key and known_hosts happen here only;
the session manager receives explicit paths.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_key_path() -> str:
    return str(Path.home() / ".ssh" / "id_rsa")


def _default_known_hosts_path() -> str:
    return str(Path.home() / ".ssh" / "known_hosts")


class Settings(BaseSettings):
    """Client settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="ILLUMOS_")

    # Remote host (the global zone), "host" or "host:port"
    host: str = ""
    port: int = 22
    user: str = "root"

    # Credentials
    key_path: str = Field(default_factory=_default_key_path)
    key_passphrase: Optional[str] = None

    # Host key verification; ignore_host_key accepts any server key
    ignore_host_key: bool = False
    known_hosts_path: Optional[str] = Field(default_factory=_default_known_hosts_path)

    # Dial timeout only; remote commands never time out
    connect_timeout: float = 30.0

    # ZFS configuration
    zfs_binary: str = "zfs"
    uuid_property: str = "terraform:uuid"

    # Logging
    log_level: str = "INFO"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with the standard format (settings.log_level by default)."""
    level = level or settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


settings = Settings()
