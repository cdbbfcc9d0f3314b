"""
Remote Session Manager - SSH connection and command sessions for one host

Provides:
- One lazily-established, key-authenticated paramiko connection
- Single-use command sessions opened over that connection
- Explicit close/reset of the connection

Does NOT provide (intentionally):
- Reconnect on failure or health checks
- Connection pooling or session reuse
- Command timeouts
"""

import io
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

import paramiko

from illumos_zfs.errors import SessionConnectionError, SessionError

logger = logging.getLogger(__name__)

# Tried in order when parsing the private key
KEY_CLASSES = (paramiko.Ed25519Key, paramiko.RSAKey, paramiko.ECDSAKey)


def split_host_port(host: str, default_port: int = 22) -> Tuple[str, int]:
    """
    Split a "host:port" string.

    Bare hosts and IPv6 literals without brackets keep the default port.

    Args:
        host: "host", "host:port" or "[v6addr]:port"
        default_port: Port used when none is embedded

    Returns:
        Tuple of (hostname, port)
    """
    if host.startswith("["):
        addr, _, rest = host[1:].partition("]")
        if rest.startswith(":") and rest[1:].isdigit():
            return addr, int(rest[1:])
        return addr, default_port
    if host.count(":") == 1:
        name, port = host.split(":")
        if port.isdigit():
            return name, int(port)
    return host, default_port


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable connection settings for one remote host."""

    host: str
    username: str
    key_path: str
    port: int = 22
    key_passphrase: Optional[str] = None
    ignore_host_key: bool = False
    known_hosts_path: Optional[str] = None
    connect_timeout: Optional[float] = 30.0

    @property
    def address(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"


@dataclass
class CommandResult:
    """Outcome of one remote command."""

    command: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def load_private_key(key_path: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """
    Load an SSH private key, trying Ed25519, RSA, and ECDSA formats.

    Args:
        key_path: Path to private key file
        passphrase: Optional passphrase for encrypted keys

    Returns:
        paramiko key object

    Raises:
        SessionConnectionError: if the file is missing, unreadable or not a supported key
    """
    logger.info(f"Loading private key from {key_path}")
    try:
        with open(key_path, "r") as key_file:
            key_data = key_file.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SessionConnectionError(f"Unable to read private key {key_path}: {e}") from e

    last_error: Optional[Exception] = None
    for key_class in KEY_CLASSES:
        try:
            pkey = key_class.from_private_key(io.StringIO(key_data), password=passphrase)
            logger.debug(f"Loaded key as {key_class.__name__}")
            return pkey
        except (paramiko.SSHException, ValueError) as e:
            logger.debug(f"{key_class.__name__} parse failed: {type(e).__name__}")
            last_error = e

    raise SessionConnectionError(
        f"Failed to parse private key {key_path} as any known type (Ed25519, RSA, ECDSA): {last_error}"
    )


class _StreamReader(threading.Thread):
    """Reads one channel stream to EOF in the background."""

    def __init__(self, stream):
        super().__init__(daemon=True)
        self._stream = stream
        self._data = b""
        self._error: Optional[BaseException] = None

    def run(self):
        try:
            self._data = self._stream.read()
        except (paramiko.SSHException, OSError) as e:
            self._error = e

    def result(self) -> bytes:
        self.join()
        if self._error is not None:
            raise self._error
        return self._data


class RemoteSession:
    """
    A single-use command channel over an established connection.

    Use as a context manager so the channel is closed on every exit path.
    """

    def __init__(self, channel: paramiko.Channel, host: Optional[str] = None):
        self._channel = channel
        self._host = host
        self._used = False

    def run(self, command: str) -> CommandResult:
        """
        Execute one command and collect its output.

        Args:
            command: Shell command line to execute

        Returns:
            CommandResult with exit code, stdout and stderr

        Raises:
            SessionError: if the session was already used or the channel fails
        """
        if self._used:
            raise SessionError("Session already used; open a new session per command", host=self._host)
        self._used = True

        try:
            self._channel.exec_command(command)
            # stdout and stderr share the channel window; drain both at once
            stderr_reader = _StreamReader(self._channel.makefile_stderr("rb", -1))
            stderr_reader.start()
            stdout = self._channel.makefile("rb", -1).read()
            stderr = stderr_reader.result()
            exit_code = self._channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise SessionError(f"Failed to execute remote command: {e}", host=self._host) from e

        result = CommandResult(
            command=command,
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        logger.debug(f"Command exited {exit_code}: {command}")
        return result

    def close(self):
        """Release the channel."""
        self._channel.close()

    def __enter__(self) -> "RemoteSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class RemoteSessionManager:
    """
    Owns at most one SSH connection to a host and hands out sessions on it.

    The connection handle is guarded by a lock; configuration stays in the
    immutable ConnectionConfig.
    """

    def __init__(self, config: ConnectionConfig):
        """
        Initialize the session manager.

        Args:
            config: Connection settings (host, user, key path, host key policy)
        """
        self.config = config
        self._client: Optional[paramiko.SSHClient] = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def ensure_connected(self):
        """
        Establish the connection if there is none yet.

        Returns immediately when a connection handle already exists; it is
        not re-validated. On failure nothing is stored, so the next call
        starts over.

        Raises:
            SessionConnectionError: if the key cannot be loaded or the dial fails
        """
        with self._lock:
            if self._client is not None:
                return
            self._client = self._connect()

    def _connect(self) -> paramiko.SSHClient:
        config = self.config
        pkey = load_private_key(config.key_path, config.key_passphrase)

        client = paramiko.SSHClient()
        if config.ignore_host_key:
            logger.warning(f"Host key verification disabled for {config.host}")
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        else:
            if config.known_hosts_path:
                try:
                    client.load_host_keys(config.known_hosts_path)
                except OSError as e:
                    client.close()
                    raise SessionConnectionError(
                        f"Unable to read known hosts file {config.known_hosts_path}: {e}",
                        host=config.host
                    ) from e
            client.set_missing_host_key_policy(paramiko.RejectPolicy())

        logger.info(f"Connecting to host: {config.address}")
        try:
            client.connect(
                hostname=config.host,
                port=config.port,
                username=config.username,
                pkey=pkey,
                timeout=config.connect_timeout,
                allow_agent=False,
                look_for_keys=False
            )
        except paramiko.AuthenticationException as e:
            client.close()
            logger.error(f"Authentication failed for {config.address}: {e}")
            raise SessionConnectionError(f"Authentication failed: {e}", host=config.host) from e
        except (paramiko.SSHException, socket.timeout, OSError) as e:
            client.close()
            logger.error(f"Connection failed to {config.address}: {e}")
            raise SessionConnectionError(f"Connection failed: {e}", host=config.host) from e

        logger.info(f"Connected successfully to {config.host}")
        return client

    def new_session(self) -> RemoteSession:
        """
        Open a fresh command session over the established connection.

        Returns:
            RemoteSession (use as a context manager)

        Raises:
            SessionError: if not connected or the channel cannot be opened
        """
        with self._lock:
            client = self._client
        if client is None:
            raise SessionError("Not connected; call ensure_connected() first", host=self.config.host)

        transport = client.get_transport()
        if transport is None or not transport.is_active():
            raise SessionError("SSH transport is not active", host=self.config.host)

        try:
            channel = transport.open_session()
        except (paramiko.SSHException, OSError) as e:
            raise SessionError(f"Failed to open session: {e}", host=self.config.host) from e
        return RemoteSession(channel, host=self.config.host)

    def close(self):
        """Close the connection if open; the next ensure_connected() reconnects."""
        with self._lock:
            if self._client is not None:
                logger.info(f"Closing connection to {self.config.host}")
                self._client.close()
                self._client = None

    def __enter__(self) -> "RemoteSessionManager":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
