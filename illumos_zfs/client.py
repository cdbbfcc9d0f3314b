"""
Client facade wiring settings, the session manager and dataset services.

Usage:
    from illumos_zfs import IllumosClient, Dataset

    with IllumosClient.from_settings() as client:
        dataset = client.resource.create(Dataset(name="tank/data1", quota="5G"))
"""

import logging
from typing import Optional

from illumos_zfs.config import Settings, settings as default_settings
from illumos_zfs.services.resource import DatasetResource
from illumos_zfs.services.session_manager import (
    ConnectionConfig,
    RemoteSessionManager,
    split_host_port,
)
from illumos_zfs.services.zfs import DatasetService

logger = logging.getLogger(__name__)


class IllumosClient:
    """One remote illumos host: one connection, dataset operations on top."""

    def __init__(self, config: ConnectionConfig, zfs_binary: str = "zfs",
                 uuid_property: str = "terraform:uuid"):
        self.sessions = RemoteSessionManager(config)
        self.datasets = DatasetService(self.sessions, zfs_binary=zfs_binary, uuid_property=uuid_property)
        self.resource = DatasetResource(self.datasets)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "IllumosClient":
        """
        Build a client from Settings (environment by default).

        The host may embed a port ("host:port"), which wins over settings.port.
        """
        settings = settings or default_settings
        host, port = split_host_port(settings.host, settings.port)
        config = ConnectionConfig(
            host=host,
            port=port,
            username=settings.user,
            key_path=settings.key_path,
            key_passphrase=settings.key_passphrase,
            ignore_host_key=settings.ignore_host_key,
            known_hosts_path=settings.known_hosts_path,
            connect_timeout=settings.connect_timeout,
        )
        logger.debug(f"Configured client for {config.address}")
        return cls(config, zfs_binary=settings.zfs_binary, uuid_property=settings.uuid_property)

    def close(self):
        self.sessions.close()

    def __enter__(self) -> "IllumosClient":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
