"""Services for SSH sessions and ZFS dataset lifecycle."""

from illumos_zfs.services.session_manager import (
    CommandResult,
    ConnectionConfig,
    RemoteSession,
    RemoteSessionManager,
)
from illumos_zfs.services.zfs import DatasetService
from illumos_zfs.services.resource import DatasetResource

__all__ = [
    'CommandResult',
    'ConnectionConfig',
    'RemoteSession',
    'RemoteSessionManager',
    'DatasetService',
    'DatasetResource',
]
