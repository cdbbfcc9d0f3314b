"""
illumos ZFS error types

Every failure surfaces synchronously as one of these exceptions. Nothing is
retried internally.
"""

from typing import Optional


class IllumosError(Exception):
    """Base exception for illumos dataset operations"""

    def __init__(self, message: str, host: Optional[str] = None):
        self.message = message
        self.host = host
        super().__init__(self.message)


class SessionConnectionError(IllumosError):
    """Raised when the SSH connection cannot be established (key or dial failure)"""


class SessionError(IllumosError):
    """Raised when a command channel cannot be opened or used"""


class RemoteCommandError(IllumosError):
    """Raised when a remote zfs command fails or reports on stderr"""

    def __init__(self, message: str, command: str, exit_code: int, stderr: str = "",
                 host: Optional[str] = None):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        if stderr.strip():
            message = f"{message} ({stderr.strip()})"
        super().__init__(message, host=host)


class DatasetParseError(IllumosError):
    """Raised when zfs list output cannot be turned into a dataset record"""

    def __init__(self, message: str, output: str = "", host: Optional[str] = None):
        self.output = output
        super().__init__(message, host=host)


class DatasetNotFoundError(DatasetParseError):
    """Raised when no dataset carries the requested identifier"""

    def __init__(self, dataset_id: str, output: str = "", host: Optional[str] = None):
        self.dataset_id = dataset_id
        message = f"No dataset found with identifier {dataset_id}"
        super().__init__(message, output=output, host=host)


class DatasetValidationError(IllumosError, ValueError):
    """Raised when a dataset name or property is unsafe to send to the remote host"""
