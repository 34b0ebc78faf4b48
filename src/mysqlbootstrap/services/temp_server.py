"""Lifecycle of the network-isolated bootstrap server."""

from typing import Callable, Dict, FrozenSet, List, Optional

from mysqlbootstrap.errors import BootstrapError, TemporaryServerError
from mysqlbootstrap.errors_catalog import actionable_error
from mysqlbootstrap.models import TempServerState
from mysqlbootstrap.services.sql_client import client_passfile

_TRANSITIONS: Dict[TempServerState, FrozenSet[TempServerState]] = {
    TempServerState.NOT_STARTED: frozenset({TempServerState.STARTING}),
    TempServerState.STARTING: frozenset({TempServerState.RUNNING, TempServerState.FAILED}),
    TempServerState.RUNNING: frozenset({TempServerState.STOPPING}),
    TempServerState.STOPPING: frozenset({TempServerState.STOPPED, TempServerState.FAILED}),
    TempServerState.STOPPED: frozenset(),
    TempServerState.FAILED: frozenset(),
}


class TemporaryServer:
    """Starts the server daemonized on the private socket only, then shuts it down."""

    def __init__(
        self,
        logger,
        run_cmd: Callable,
        server_argv: List[str],
        socket: str,
        admin_command: str = "mysqladmin",
    ):
        self.logger = logger
        self.run_cmd = run_cmd
        self.server_argv = list(server_argv)
        self.socket = socket
        self.admin_command = admin_command
        self.state = TempServerState.NOT_STARTED

    def _transition(self, new_state: TempServerState):
        if new_state not in _TRANSITIONS[self.state]:
            raise TemporaryServerError(
                f"Temporary server cannot go from {self.state.value} to {new_state.value}."
            )
        self.logger.debug("Temporary server: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    @property
    def is_running(self) -> bool:
        return self.state == TempServerState.RUNNING

    def initialize_data_dir(self):
        self.logger.info("Initializing database files")
        cmd = self.server_argv + [
            "--initialize-insecure",
            "--default-time-zone=SYSTEM",
            "--autocommit=1",
        ]
        try:
            self.run_cmd(cmd, check=True)
        except BootstrapError as exc:
            raise TemporaryServerError(f"Could not initialize database files: {exc}") from exc
        self.logger.info("Database files initialized")

    def start_command(self) -> List[str]:
        return self.server_argv + [
            "--daemonize",
            "--skip-networking",
            "--default-time-zone=SYSTEM",
            f"--socket={self.socket}",
        ]

    def start(self):
        self._transition(TempServerState.STARTING)
        self.logger.info("Starting temporary server")

        try:
            self.run_cmd(self.start_command(), check=True)
        except BootstrapError as exc:
            self._transition(TempServerState.FAILED)
            raise TemporaryServerError(
                f"{actionable_error('temp_server_start_failed')}\n{exc}"
            ) from exc

        self._transition(TempServerState.RUNNING)
        self.logger.info("Temporary server started.")

    def stop(self, root_password: Optional[str]):
        self._transition(TempServerState.STOPPING)
        self.logger.info("Stopping temporary server")

        with client_passfile(root_password) as passfile_path:
            cmd = [
                self.admin_command,
                f"--defaults-extra-file={passfile_path}",
                "shutdown",
                "-uroot",
                f"--socket={self.socket}",
            ]
            try:
                self.run_cmd(cmd, check=True, capture_output=True)
            except BootstrapError as exc:
                self._transition(TempServerState.FAILED)
                raise TemporaryServerError(
                    f"{actionable_error('temp_server_stop_failed')}\n{exc}"
                ) from exc

        self._transition(TempServerState.STOPPED)
        self.logger.info("Temporary server stopped")
