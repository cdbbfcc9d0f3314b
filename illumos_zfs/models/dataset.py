"""
Pydantic model for a ZFS dataset managed on a remote illumos host.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from illumos_zfs.errors import DatasetValidationError


class Dataset(BaseModel):
    """
    ZFS dataset as seen by the lifecycle operations.

    The record is a transient view: every operation re-reads the remote host.
    Empty compression/quota mean "unset, inherit from parent".
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[UUID] = Field(default=None, alias="uuid")
    name: str
    compression: str = ""
    quota: str = ""

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "Dataset":
        """
        Load a dataset from a plain configuration mapping.

        Args:
            data: Mapping with 'name' and optional 'uuid', 'compression', 'quota'

        Returns:
            Dataset record

        Raises:
            DatasetValidationError: if 'uuid' is present but not a valid UUID
        """
        try:
            return cls(
                uuid=data.get("uuid") or None,
                name=data.get("name", ""),
                compression=data.get("compression") or "",
                quota=data.get("quota") or "",
            )
        except ValidationError as e:
            raise DatasetValidationError(f"Invalid dataset configuration: {e}") from e

    def to_mapping(self) -> Dict[str, str]:
        """Save the dataset back to a plain configuration mapping."""
        return {
            "uuid": str(self.id) if self.id else "",
            "name": self.name,
            "compression": self.compression,
            "quota": self.quota,
        }
