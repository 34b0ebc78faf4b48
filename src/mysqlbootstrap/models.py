"""Shared domain models for mysqlbootstrap."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .constants import (
    ADMIN_COMMAND,
    CLIENT_COMMAND,
    INIT_SCRIPTS_DIR,
    SERVER_COMMAND,
    SERVICE_USER,
    TZINFO_COMMAND,
    ZONEINFO_DIR,
)


@dataclass(frozen=True)
class ServerConfig:
    """Effective server paths reported by the server binary itself."""

    data_dir: str
    socket: str
    general_log_file: Optional[str] = None
    pid_file: Optional[str] = None
    secure_file_priv: Optional[str] = None


@dataclass(frozen=True)
class CredentialSet:
    """Resolved credentials and first-boot switches."""

    root_password: str = ""
    root_host: str = ""
    allow_empty_password: bool = False
    random_root_password: bool = False
    database: str = ""
    user: str = ""
    password: str = ""
    onetime_password: bool = False
    healthcheck_disabled: bool = False
    skip_tzinfo: bool = False

    @property
    def creates_app_user(self) -> bool:
        return bool(self.user and self.password)


@dataclass(frozen=True)
class EntrypointSettings:
    """Settings of the entrypoint itself, independent of the database."""

    init_scripts_dir: str = INIT_SCRIPTS_DIR
    service_user: str = SERVICE_USER
    zoneinfo_dir: str = ZONEINFO_DIR
    server_command: str = SERVER_COMMAND
    client_command: str = CLIENT_COMMAND
    admin_command: str = ADMIN_COMMAND
    tzinfo_command: str = TZINFO_COMMAND


@dataclass(frozen=True)
class AccountRef:
    user: str
    host: str


class StatementKind(str, Enum):
    SESSION = "session"
    CREATE_USER = "create_user"
    ALTER_USER = "alter_user"
    GRANT = "grant"
    DROP_DATABASE = "drop_database"
    CREATE_DATABASE = "create_database"
    EXPIRE_PASSWORD = "expire_password"


@dataclass(frozen=True)
class SqlStatement:
    kind: StatementKind
    text: str
    account: Optional[AccountRef] = None
    redacted: Optional[str] = None

    @property
    def display_text(self) -> str:
        return self.redacted if self.redacted is not None else self.text


class TempServerState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class Handoff:
    """Terminal decision of a run: re-invoke the entrypoint or exec the server."""

    kind: str
    argv: List[str]
    env: Dict[str, str] = field(default_factory=dict)
    user: Optional[str] = None

    REEXEC = "reexec"
    EXEC = "exec"
