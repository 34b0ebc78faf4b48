"""SQL client invocation against the temporary server socket."""

import os
import tempfile
from contextlib import contextmanager
from typing import IO, Callable, Iterator, List, Mapping, Optional

from mysqlbootstrap.constants import PASSFILE_MODE
from mysqlbootstrap.errors import BootstrapError, SQLBatchError


@contextmanager
def client_passfile(root_password: Optional[str]) -> Iterator[str]:
    """Yields a private option file holding the root password, if any.

    The password never appears on a command line, where it would be visible
    in the process table.
    """
    fd, path = tempfile.mkstemp(prefix="mysqlbootstrap-", suffix=".cnf")
    try:
        os.chmod(path, PASSFILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
            if root_password:
                escaped = root_password.replace("\\", "\\\\").replace('"', '\\"')
                file_obj.write(f'[client]\npassword="{escaped}"\n')
        yield path
    finally:
        try:
            os.remove(path)
        except OSError:
            pass


class SqlClient:
    """Runs SQL through the ``mysql`` command line client over the private socket."""

    def __init__(
        self,
        logger,
        run_cmd: Callable,
        run_streaming: Callable,
        socket: str,
        client_command: str = "mysql",
        env: Optional[Mapping[str, str]] = None,
    ):
        self.logger = logger
        self.run_cmd = run_cmd
        self.run_streaming = run_streaming
        self.socket = socket
        self.client_command = client_command
        self.env = env

    def build_command(self, passfile_path: str, database: Optional[str] = None) -> List[str]:
        cmd = [
            self.client_command,
            f"--defaults-extra-file={passfile_path}",
            "--protocol=socket",
            "-uroot",
            "-hlocalhost",
            f"--socket={self.socket}",
            "--comments",
        ]
        if database:
            cmd.append(f"--database={database}")
        return cmd

    def execute(
        self,
        sql: str,
        root_password: Optional[str] = None,
        database: Optional[str] = None,
    ):
        with client_passfile(root_password) as passfile_path:
            cmd = self.build_command(passfile_path, database)
            try:
                self.run_cmd(
                    cmd,
                    check=True,
                    capture_output=True,
                    input_text=sql,
                    env=self.env,
                )
            except BootstrapError as exc:
                raise SQLBatchError(str(exc)) from exc

    def execute_stream(
        self,
        source: IO[bytes],
        root_password: Optional[str] = None,
        database: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        with client_passfile(root_password) as passfile_path:
            cmd = self.build_command(passfile_path, database)
            try:
                self.run_streaming(cmd, source, env=self.env if env is None else env)
            except BootstrapError as exc:
                raise SQLBatchError(str(exc)) from exc
