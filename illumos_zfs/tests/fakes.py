"""In-memory stand-ins for the SSH layer and a remote zfs command."""

import shlex
from typing import Dict, List, Optional

from illumos_zfs.errors import SessionError
from illumos_zfs.services.session_manager import CommandResult, ConnectionConfig


class FakeZfsHost:
    """Interprets zfs create/list/set/destroy against a dict of datasets."""

    def __init__(self):
        self.datasets: Dict[str, Dict[str, str]] = {}
        self.commands: List[str] = []
        # command prefix -> CommandResult override
        self.overrides: Dict[str, CommandResult] = {}

    def execute(self, command: str) -> CommandResult:
        self.commands.append(command)
        argv = shlex.split(command)
        for prefix, result in self.overrides.items():
            if command.startswith(prefix):
                return CommandResult(command, result.exit_code, result.stdout, result.stderr)
        handler = getattr(self, f"_zfs_{argv[1]}")
        return handler(command, argv[2:])

    def add(self, name: str, **props: str):
        self.datasets[name] = {"compression": "off", "quota": "none", **props}

    def _fail(self, command: str, message: str) -> CommandResult:
        return CommandResult(command, 1, "", message + "\n")

    def _zfs_create(self, command: str, args: List[str]) -> CommandResult:
        name = args[-1]
        if name in self.datasets:
            return self._fail(command, f"cannot create '{name}': dataset already exists")
        props = {}
        options = args[:-1]
        for flag, assignment in zip(options[::2], options[1::2]):
            assert flag == "-o", options
            key, _, value = assignment.partition("=")
            props[key] = value
        self.add(name, **props)
        return CommandResult(command, 0, "", "")

    def _zfs_list(self, command: str, args: List[str]) -> CommandResult:
        columns = args[args.index("-o") + 1].split(",")
        lines = []
        for name, props in sorted(self.datasets.items()):
            values = [name if column == "name" else props.get(column, "-") for column in columns]
            lines.append("\t".join(values))
        return CommandResult(command, 0, "".join(line + "\n" for line in lines), "")

    def _zfs_set(self, command: str, args: List[str]) -> CommandResult:
        name = args[-1]
        if name not in self.datasets:
            return self._fail(command, f"cannot open '{name}': dataset does not exist")
        for assignment in args[:-1]:
            key, _, value = assignment.partition("=")
            if not value:
                return self._fail(command, f"cannot set property for '{name}': '{key}' must be a non-empty value")
            self.datasets[name][key] = value
        return CommandResult(command, 0, "", "")

    def _zfs_destroy(self, command: str, args: List[str]) -> CommandResult:
        name = args[-1]
        if name not in self.datasets:
            return self._fail(command, f"cannot open '{name}': dataset does not exist")
        del self.datasets[name]
        return CommandResult(command, 0, "", "")


class FakeSession:
    def __init__(self, host: FakeZfsHost, fail_with: Optional[Exception] = None):
        self.host = host
        self.fail_with = fail_with
        self.closed = False
        self.commands: List[str] = []

    def run(self, command: str) -> CommandResult:
        if self.commands:
            raise SessionError("Session already used")
        self.commands.append(command)
        if self.fail_with:
            raise self.fail_with
        return self.host.execute(command)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FakeSessionManager:
    """Session manager double; set connect_error to make ensure_connected fail."""

    def __init__(self, host: Optional[FakeZfsHost] = None):
        self.host = host or FakeZfsHost()
        self.config = ConnectionConfig(host="zone0.example.com", username="root", key_path="/dev/null")
        self.connect_error: Optional[Exception] = None
        self.session_error: Optional[Exception] = None
        self.connect_calls = 0
        self.sessions: List[FakeSession] = []
        self.connected = False

    def ensure_connected(self):
        self.connect_calls += 1
        if self.connect_error:
            raise self.connect_error
        self.connected = True

    def new_session(self) -> FakeSession:
        if not self.connected:
            raise SessionError("not connected")
        session = FakeSession(self.host, fail_with=self.session_error)
        self.sessions.append(session)
        return session

    def close(self):
        self.connected = False
