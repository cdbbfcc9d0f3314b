"""
illumos ZFS - dataset lifecycle management for remote illumos hosts.

Provides:
- A lazily-connected SSH session manager (one connection per client)
- Create / fetch / update / delete of ZFS datasets over SSH
- Declarative reconciliation of desired dataset state
"""

__version__ = "1.0.0"

from illumos_zfs.client import IllumosClient
from illumos_zfs.errors import (
    IllumosError,
    SessionConnectionError,
    SessionError,
    RemoteCommandError,
    DatasetParseError,
    DatasetNotFoundError,
    DatasetValidationError,
)
from illumos_zfs.models.dataset import Dataset

__all__ = [
    'IllumosClient',
    'Dataset',
    'IllumosError',
    'SessionConnectionError',
    'SessionError',
    'RemoteCommandError',
    'DatasetParseError',
    'DatasetNotFoundError',
    'DatasetValidationError',
]
