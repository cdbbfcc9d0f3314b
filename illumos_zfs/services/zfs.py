"""
ZFS dataset lifecycle service.

Builds zfs commands as argument lists, runs them over a fresh SSH session
and parses the output into Dataset records.
"""

import logging
import re
import shlex
import uuid
from typing import List, Sequence, Tuple
from uuid import UUID

from illumos_zfs.errors import (
    DatasetNotFoundError,
    DatasetParseError,
    DatasetValidationError,
    RemoteCommandError,
)
from illumos_zfs.models.dataset import Dataset
from illumos_zfs.services.session_manager import CommandResult, RemoteSessionManager

logger = logging.getLogger(__name__)

# pool[/child...]; pool names start with a letter, child components may contain spaces
DATASET_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9_.:\-]*(/[A-Za-z0-9_.: \-]*[A-Za-z0-9_.:\-])*")
PROPERTY_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9_.:\-]*")
# Control characters would break the tab/newline table of zfs list -H
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

LIST_COLUMNS = 4


def validate_dataset_name(name: str) -> str:
    """Reject names that are not plain ZFS dataset paths."""
    if not name or not DATASET_NAME_RE.fullmatch(name):
        raise DatasetValidationError(f"\"{name}\" is not a valid dataset name")
    return name


def validate_property(key: str, value: str) -> Tuple[str, str]:
    """Reject property names/values that cannot be passed as one zfs argument."""
    if not PROPERTY_NAME_RE.fullmatch(key):
        raise DatasetValidationError(f"\"{key}\" is not a valid property name")
    if CONTROL_CHARS_RE.search(value):
        raise DatasetValidationError(f"Value for property \"{key}\" contains control characters")
    return key, value


def parse_property_assignment(fragment: str) -> Tuple[str, str]:
    """
    Parse a key="value" fragment into (key, value).

    Surrounding double quotes on the value are optional and stripped.
    """
    key, sep, value = fragment.partition("=")
    if not sep:
        raise DatasetValidationError(f"\"{fragment}\" is not a key=value property assignment")
    key = key.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return validate_property(key, value)


class DatasetService:
    """Create, fetch, update and delete ZFS datasets on the remote host."""

    def __init__(self, sessions: RemoteSessionManager, zfs_binary: str = "zfs",
                 uuid_property: str = "terraform:uuid"):
        self.sessions = sessions
        self.zfs = zfs_binary
        self.uuid_property = validate_property(uuid_property, "")[0]

    @property
    def host(self) -> str:
        return self.sessions.config.host

    def _run_command(self, cmd: List[str]) -> CommandResult:
        """Run one command on its own session; the session is always released."""
        command = shlex.join(cmd)
        logger.info(f"SSH execute: {command}")
        with self.sessions.new_session() as session:
            return session.run(command)

    # =========================================================================
    # Dataset Operations
    # =========================================================================

    def create_dataset(self, dataset: Dataset) -> UUID:
        """
        Create a dataset tagged with a newly generated identifier.

        Only the identifier is returned; fetch the dataset to get its remote state.

        Args:
            dataset: Desired dataset (name, optional compression and quota)

        Returns:
            The generated identifier

        Raises:
            SessionConnectionError, SessionError: on transport failures
            DatasetValidationError: if the name or a property value is unsafe
            RemoteCommandError: if zfs create fails
        """
        self.sessions.ensure_connected()

        name = validate_dataset_name(dataset.name)
        dataset_id = uuid.uuid4()

        cmd = [self.zfs, "create", "-o", f"{self.uuid_property}={dataset_id}"]
        if dataset.compression:
            key, value = validate_property("compression", dataset.compression)
            cmd.extend(["-o", f"{key}={value}"])
        if dataset.quota:
            key, value = validate_property("quota", dataset.quota)
            cmd.extend(["-o", f"{key}={value}"])
        cmd.append(name)

        result = self._run_command(cmd)
        if not result.success:
            logger.error(f"Failed to create dataset {name}: {result.stderr}")
            raise RemoteCommandError(
                "remote command zfs create failed",
                command=result.command,
                exit_code=result.exit_code,
                stderr=result.stderr,
                host=self.host
            )

        logger.info(f"Created dataset {name} with identifier {dataset_id}")
        return dataset_id

    def get_dataset(self, dataset_id: UUID) -> Dataset:
        """
        Fetch the dataset whose identifier property equals dataset_id.

        Args:
            dataset_id: Identifier returned by create_dataset

        Returns:
            Dataset with id == dataset_id

        Raises:
            RemoteCommandError: if zfs list fails
            DatasetParseError: if the listing is malformed or matches more than once
            DatasetNotFoundError: if no dataset carries the identifier
        """
        self.sessions.ensure_connected()

        cmd = [
            self.zfs, "list", "-H",
            "-o", f"name,{self.uuid_property},compression,quota",
            "-t", "filesystem,volume"
        ]
        result = self._run_command(cmd)
        if not result.success:
            raise RemoteCommandError(
                "remote command zfs list failed",
                command=result.command,
                exit_code=result.exit_code,
                stderr=result.stderr,
                host=self.host
            )

        wanted = str(dataset_id)
        matches = [row for row in self._parse_listing(result.stdout) if row[1] == wanted]

        if not matches:
            logger.info(f"No dataset with identifier {wanted}")
            raise DatasetNotFoundError(wanted, output=result.stdout, host=self.host)
        if len(matches) > 1:
            names = ", ".join(row[0] for row in matches)
            raise DatasetParseError(
                f"Identifier {wanted} is set on more than one dataset: {names}",
                output=result.stdout,
                host=self.host
            )

        name, _, compression, quota = matches[0]
        dataset = Dataset(id=dataset_id, name=name, compression=compression, quota=quota)
        logger.debug(f"Returned data: {dataset.model_dump_json(by_alias=True)}")
        return dataset

    def _parse_listing(self, output: str) -> List[Tuple[str, ...]]:
        """Split zfs list -H output into (name, uuid, compression, quota) rows."""
        rows = []
        for line in output.split("\n"):
            if not line:
                continue
            parts = tuple(line.split("\t"))
            if len(parts) != LIST_COLUMNS:
                logger.error(f"Failed to parse zfs list line: {line!r}")
                raise DatasetParseError(
                    f"Expected {LIST_COLUMNS} columns in zfs list output, got {len(parts)}",
                    output=output,
                    host=self.host
                )
            rows.append(parts)
        return rows

    def update_dataset(self, dataset: Dataset, properties: Sequence[str]):
        """
        Set properties on an existing dataset.

        Args:
            dataset: Target dataset (only the name is used)
            properties: Ordered key="value" fragments, e.g. ['quota="10G"']

        Raises:
            DatasetValidationError: if properties is empty or a fragment is invalid
            RemoteCommandError: if zfs set fails or writes to stderr
        """
        self.sessions.ensure_connected()

        name = validate_dataset_name(dataset.name)
        if not properties:
            raise DatasetValidationError(f"No properties given to update on {name}")

        cmd = [self.zfs, "set"]
        for fragment in properties:
            key, value = parse_property_assignment(fragment)
            cmd.append(f"{key}={value}")
        cmd.append(name)

        result = self._run_command(cmd)
        if not result.success or result.stderr:
            logger.error(f"Failed to update dataset {name}: {result.stderr}")
            raise RemoteCommandError(
                "remote command zfs set failed",
                command=result.command,
                exit_code=result.exit_code,
                stderr=result.stderr,
                host=self.host
            )

        logger.info(f"Updated dataset {name}")

    def delete_dataset(self, name: str):
        """
        Destroy a dataset by name.

        Any stderr output is treated as failure, even with a zero exit status.

        Raises:
            RemoteCommandError: if zfs destroy fails or writes to stderr
        """
        self.sessions.ensure_connected()

        name = validate_dataset_name(name)
        result = self._run_command([self.zfs, "destroy", name])

        if not result.success:
            logger.error(f"Failed to destroy dataset {name}: {result.stderr}")
            raise RemoteCommandError(
                "remote command zfs destroy failed",
                command=result.command,
                exit_code=result.exit_code,
                stderr=result.stderr,
                host=self.host
            )
        if result.stderr:
            raise RemoteCommandError(
                "unrecognized response from zfs destroy",
                command=result.command,
                exit_code=result.exit_code,
                stderr=result.stderr,
                host=self.host
            )

        logger.info(f"Destroyed dataset {name}")
