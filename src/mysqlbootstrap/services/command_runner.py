"""Subprocess execution service for mysqlbootstrap."""

import shutil
import subprocess
import tempfile
from typing import IO, List, Mapping, Optional

from mysqlbootstrap.errors import BootstrapError


class CommandRunner:
    """Runs external commands with consistent error handling.

    Commands are never retried: every command issued during bootstrap
    mutates server state and must happen exactly once.
    """

    def __init__(self, logger, env: Optional[Mapping[str, str]] = None):
        self.logger = logger
        self.env = dict(env) if env is not None else None

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        input_text: Optional[str] = None,
        stdin: Optional[IO] = None,
        stdout=None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        kwargs = {}
        if capture_output:
            kwargs["capture_output"] = True
        elif stdout is not None:
            kwargs["stdout"] = stdout
        if input_text is not None:
            kwargs["input"] = input_text
        elif stdin is not None:
            kwargs["stdin"] = stdin

        try:
            result = subprocess.run(
                cmd,
                text=True,
                env=self._effective_env(env),
                timeout=timeout,
                **kwargs,
            )
        except FileNotFoundError as exc:
            raise BootstrapError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise BootstrapError(f"Command timed out after {timeout}s: {cmd_str}") from exc
        except OSError as exc:
            raise BootstrapError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise BootstrapError(message)

        self.logger.warning(message)
        return result

    def run_streaming(
        self,
        cmd: List[str],
        source: IO[bytes],
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Feed a binary stream into ``cmd``'s stdin without buffering it in memory."""
        cmd_str = " ".join(cmd)
        self.logger.debug("Streaming into: %s", cmd_str)

        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.PIPE,
                    stderr=stderr_file,
                    env=self._effective_env(env),
                )
            except FileNotFoundError as exc:
                raise BootstrapError(
                    f"Required command not found: {cmd[0]}. Please install it and try again."
                ) from exc
            except OSError as exc:
                raise BootstrapError(f"Failed to execute command: {cmd_str}. {exc}") from exc

            try:
                shutil.copyfileobj(source, process.stdin)
            except BrokenPipeError:
                # The command exited early; its return code carries the reason.
                pass
            finally:
                try:
                    process.stdin.close()
                except BrokenPipeError:
                    pass

            returncode = process.wait()
            stderr_file.seek(0)
            stderr = stderr_file.read().decode("utf-8", errors="replace").strip()

        if returncode != 0:
            message = f"Command failed ({returncode}): {cmd_str}"
            if stderr:
                message = f"{message}\n{stderr}"
            raise BootstrapError(message)

        return subprocess.CompletedProcess(cmd, returncode, stdout=None, stderr=stderr)

    def _effective_env(self, env: Optional[Mapping[str, str]]):
        if env is not None:
            return dict(env)
        return self.env
