"""Server configuration introspection for mysqlbootstrap."""

import os
import re
import tempfile
import uuid
from typing import Callable, Dict, List, Optional

from packaging import version

from mysqlbootstrap.constants import MINIMUM_SERVER_VERSION, UNSET_CONFIG_VALUES
from mysqlbootstrap.errors import BootstrapError, IntrospectionError
from mysqlbootstrap.errors_catalog import actionable_error
from mysqlbootstrap.models import ServerConfig


class IntrospectionService:
    """Reads effective settings from the server's ``--verbose --help`` output."""

    VERSION_PATTERN = re.compile(r"\bVer\s+(\d+(?:\.\d+)*)")

    def __init__(self, logger, server_command: str):
        self.logger = logger
        self.server_command = server_command

    def verbose_help_args(self) -> List[str]:
        # A fresh, never-created index path keeps the binlog index of a
        # running server untouched while the options are evaluated.
        scratch_index = os.path.join(
            tempfile.gettempdir(), f"mysqlbootstrap-{uuid.uuid4().hex}.index"
        )
        return ["--verbose", "--help", f"--log-bin-index={scratch_index}"]

    @staticmethod
    def parse_verbose_help(output: str) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for line in output.splitlines():
            if not line or line[0].isspace():
                continue
            parts = line.split(None, 1)
            key = parts[0]
            if key in values:
                continue
            values[key] = parts[1].strip() if len(parts) > 1 else ""
        return values

    @staticmethod
    def config_value(values: Dict[str, str], key: str) -> Optional[str]:
        value = values.get(key)
        if not value or value in UNSET_CONFIG_VALUES:
            return None
        return value

    def check_config(self, server_argv: List[str], run_cmd: Callable):
        cmd = list(server_argv) + self.verbose_help_args()
        try:
            run_cmd(cmd, check=True, capture_output=True)
        except BootstrapError as exc:
            message = actionable_error(
                "config_check_failed",
                server=self.server_command,
                command=" ".join(cmd),
            )
            raise IntrospectionError(f"{message}\n\t{exc}") from exc

    def read_values(self, server_argv: List[str], run_cmd: Callable) -> Dict[str, str]:
        cmd = list(server_argv) + self.verbose_help_args()
        try:
            result = run_cmd(cmd, check=True, capture_output=True)
        except BootstrapError as exc:
            raise IntrospectionError(f"Could not read server configuration: {exc}") from exc
        return self.parse_verbose_help(result.stdout or "")

    def load_server_config(self, server_argv: List[str], run_cmd: Callable) -> ServerConfig:
        values = self.read_values(server_argv, run_cmd)

        data_dir = self.config_value(values, "datadir")
        socket = self.config_value(values, "socket")
        for key, value in (("datadir", data_dir), ("socket", socket)):
            if value is None:
                raise IntrospectionError(actionable_error("config_value_missing", key=key))

        server_config = ServerConfig(
            data_dir=data_dir,
            socket=socket,
            general_log_file=self.config_value(values, "general-log-file"),
            pid_file=self.config_value(values, "pid-file"),
            secure_file_priv=self.config_value(values, "secure-file-priv"),
        )
        self.logger.debug("Resolved server configuration: %s", server_config)
        return server_config

    def default_socket(self, run_cmd: Callable) -> Optional[str]:
        """Socket path the server uses when no option files are read."""
        cmd = [self.server_command, "--no-defaults"] + self.verbose_help_args()
        try:
            result = run_cmd(cmd, check=True, capture_output=True)
        except BootstrapError as exc:
            self.logger.warning("Could not determine the default socket path: %s", exc)
            return None
        return self.config_value(self.parse_verbose_help(result.stdout or ""), "socket")

    def server_version(self, run_cmd: Callable) -> Optional[str]:
        try:
            result = run_cmd([self.server_command, "--version"], check=True, capture_output=True)
        except BootstrapError as exc:
            self.logger.warning("Could not determine server version: %s", exc)
            return None

        match = self.VERSION_PATTERN.search(result.stdout or "")
        if not match:
            self.logger.warning("Could not determine server version.")
            return None
        return match.group(1)

    def ensure_supported_version(self, server_version: Optional[str]):
        if not server_version:
            return

        if version.parse(server_version) < version.parse(MINIMUM_SERVER_VERSION):
            raise BootstrapError(
                actionable_error(
                    "server_too_old",
                    version=server_version,
                    minimum=MINIMUM_SERVER_VERSION,
                )
            )
