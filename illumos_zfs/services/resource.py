"""
Declarative reconciliation of desired dataset state.

Drives the four DatasetService operations the way a configuration-management
resource does: create then read back, diff compression/quota on update,
delete by name.
"""

import logging
from typing import List, Union
from uuid import UUID

from illumos_zfs.errors import DatasetValidationError
from illumos_zfs.models.dataset import Dataset
from illumos_zfs.services.zfs import DatasetService

logger = logging.getLogger(__name__)

# Properties that may change after creation
MUTABLE_PROPERTIES = ("compression", "quota")


class DatasetResource:
    """Create/read/update/delete a dataset from desired and current state."""

    def __init__(self, service: DatasetService):
        self.service = service

    def create(self, desired: Dataset) -> Dataset:
        """Create the dataset and return its remote state."""
        dataset_id = self.service.create_dataset(desired)
        return self.service.get_dataset(dataset_id)

    def read(self, dataset_id: Union[UUID, str]) -> Dataset:
        """Fetch remote state; any error means existence could not be confirmed."""
        if not isinstance(dataset_id, UUID):
            try:
                dataset_id = UUID(str(dataset_id))
            except ValueError as e:
                logger.error(f"Failed to parse incoming ID: {dataset_id}")
                raise DatasetValidationError(f"\"{dataset_id}\" is not a valid dataset identifier") from e
        return self.service.get_dataset(dataset_id)

    def changed_properties(self, current: Dataset, desired: Dataset) -> List[str]:
        """
        Build key="value" fragments for every mutable property that differs.

        An empty desired value means "unset/inherit" and is never sent.
        """
        properties = []
        for key in MUTABLE_PROPERTIES:
            new_value = getattr(desired, key)
            if new_value and new_value != getattr(current, key):
                properties.append(f'{key}="{new_value}"')
        return properties

    def update(self, current: Dataset, desired: Dataset) -> Dataset:
        """
        Apply compression/quota changes and return the refreshed state.

        Raises:
            DatasetValidationError: if the name changed (the dataset must be replaced)
                or the current state has no identifier
        """
        if current.id is None:
            raise DatasetValidationError(f"Dataset {current.name} has no identifier; create it first")
        if desired.name != current.name:
            raise DatasetValidationError(
                f"Cannot rename dataset {current.name} to {desired.name}; replace it instead"
            )

        properties = self.changed_properties(current, desired)
        if properties:
            self.service.update_dataset(current, properties)
        else:
            logger.debug(f"No property changes for {current.name}")

        return self.service.get_dataset(current.id)

    def delete(self, current: Dataset):
        """Destroy the dataset by its name (resolved from a prior read)."""
        logger.info(f"Request to delete dataset with ID: {current.id}")
        self.service.delete_dataset(current.name)
