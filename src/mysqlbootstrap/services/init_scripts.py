"""Runner for user-supplied scripts in the init directory."""

import bz2
import gzip
import lzma
import os
import subprocess
import tempfile
from typing import Callable, Dict, List, Optional, Tuple

from mysqlbootstrap.constants import ZSTD_COMMAND
from mysqlbootstrap.errors import BootstrapError, InitScriptError
from mysqlbootstrap.errors_catalog import actionable_error
from mysqlbootstrap.models import CredentialSet
from mysqlbootstrap.services.sql_client import client_passfile

COMPRESSED_SQL_OPENERS = {
    ".sql.gz": gzip.open,
    ".sql.bz2": bz2.open,
    ".sql.xz": lzma.open,
}

ENV_END_MARKER = b"MYSQLBOOTSTRAP_ENV_END=1"

# Helper available to sourced scripts, matching the classic entrypoint API.
# The environment is dumped from the EXIT trap so that an ``exit 0`` inside
# the script still reports it; any failure leaves the dump without its marker.
SOURCED_PRELUDE = r"""
__mysqlbootstrap_dump="$2"
docker_process_sql() {
  if [ -n "$MYSQL_DATABASE" ]; then
    set -- --database="$MYSQL_DATABASE" "$@"
  fi
  "$MYSQLBOOTSTRAP_CLIENT" --defaults-extra-file="$MYSQLBOOTSTRAP_PASSFILE" \
    --protocol=socket -uroot -hlocalhost --socket="$MYSQLBOOTSTRAP_SOCKET" --comments "$@"
}
__mysqlbootstrap_finish() {
  set +a
  if [ "$1" -eq 0 ]; then
    env -0 > "$__mysqlbootstrap_dump" || exit 1
    printf 'MYSQLBOOTSTRAP_ENV_END=1\0' >> "$__mysqlbootstrap_dump" || exit 1
  fi
  exit "$1"
}
trap '__mysqlbootstrap_finish $?' EXIT
set -eo pipefail
set -a
. "$1"
"""

# Bookkeeping variables that must not leak from a sourced script.
_SOURCED_INTERNALS = {
    "MYSQLBOOTSTRAP_CLIENT",
    "MYSQLBOOTSTRAP_PASSFILE",
    "MYSQLBOOTSTRAP_SOCKET",
    "MYSQLBOOTSTRAP_ENV_END",
    "__mysqlbootstrap_dump",
    "_",
    "SHLVL",
    "PWD",
    "OLDPWD",
}


class InitScriptService:
    """Processes ``*.sh`` and ``*.sql[.gz|.bz2|.xz|.zst]`` files in filename order."""

    def __init__(
        self,
        logger,
        sql_client,
        run_cmd: Callable,
        env: Dict[str, str],
        zstd_command: str = ZSTD_COMMAND,
        shell: str = "bash",
    ):
        self.logger = logger
        self.sql_client = sql_client
        self.run_cmd = run_cmd
        self.env = dict(env)
        self.zstd_command = zstd_command
        self.shell = shell

    @staticmethod
    def classify(path: str) -> Optional[str]:
        name = os.path.basename(path)
        if name.endswith(".sh"):
            return "execute" if os.access(path, os.X_OK) else "source"
        if name.endswith(".sql"):
            return "sql"
        if any(name.endswith(suffix) for suffix in COMPRESSED_SQL_OPENERS):
            return "compressed_sql"
        if name.endswith(".sql.zst"):
            return "zstd_sql"
        return None

    @staticmethod
    def discover(init_dir: str) -> List[str]:
        if not os.path.isdir(init_dir):
            return []
        return [os.path.join(init_dir, name) for name in sorted(os.listdir(init_dir))]

    def plan(self, init_dir: str) -> List[Tuple[str, Optional[str]]]:
        return [(path, self.classify(path)) for path in self.discover(init_dir)]

    def run_all(self, init_dir: str, credentials: CredentialSet) -> Dict[str, str]:
        """Processes every init file; returns the environment as left by sourced scripts."""
        for path, action in self.plan(init_dir):
            if action is None:
                self.logger.warning("ignoring %s", path)
                continue

            verb = "sourcing" if action == "source" else "running"
            self.logger.info("%s %s", verb, path)
            try:
                self._dispatch(path, action, credentials)
            except BootstrapError as exc:
                raise InitScriptError(
                    f"{actionable_error('init_script_failed', path=path)}\n{exc}"
                ) from exc
            self.logger.debug("finished %s", path)

        return dict(self.env)

    def _dispatch(self, path: str, action: str, credentials: CredentialSet):
        if action == "execute":
            self.run_cmd([path], check=True, env=self.env)
        elif action == "source":
            self._source(path, credentials)
        elif action == "sql":
            with open(path, "rb") as source:
                self._stream_sql(source, credentials)
        elif action == "compressed_sql":
            opener = next(
                opener
                for suffix, opener in COMPRESSED_SQL_OPENERS.items()
                if path.endswith(suffix)
            )
            try:
                with opener(path, "rb") as source:
                    self._stream_sql(source, credentials)
            except (OSError, EOFError, lzma.LZMAError) as exc:
                raise BootstrapError(f"Could not decompress {path}: {exc}") from exc
        elif action == "zstd_sql":
            self._stream_zstd(path, credentials)

    def _stream_sql(self, source, credentials: CredentialSet):
        self.sql_client.execute_stream(
            source,
            root_password=credentials.root_password,
            database=self.env.get("MYSQL_DATABASE") or None,
            env=self.env,
        )

    def _stream_zstd(self, path: str, credentials: CredentialSet):
        cmd = [self.zstd_command, "-dc", path]
        try:
            process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as exc:
            raise BootstrapError(f"Failed to execute command: {' '.join(cmd)}. {exc}") from exc

        try:
            self._stream_sql(process.stdout, credentials)
        finally:
            process.stdout.close()
            stderr = process.stderr.read().decode("utf-8", errors="replace").strip()
            process.stderr.close()
            returncode = process.wait()

        if returncode != 0:
            raise BootstrapError(f"Command failed ({returncode}): {' '.join(cmd)}\n{stderr}")

    def _source(self, path: str, credentials: CredentialSet):
        fd, env_dump = tempfile.mkstemp(prefix="mysqlbootstrap-env-")
        os.close(fd)
        try:
            with client_passfile(credentials.root_password) as passfile_path:
                env = dict(self.env)
                env.update(
                    {
                        "MYSQLBOOTSTRAP_CLIENT": self.sql_client.client_command,
                        "MYSQLBOOTSTRAP_PASSFILE": passfile_path,
                        "MYSQLBOOTSTRAP_SOCKET": self.sql_client.socket,
                    }
                )
                self.run_cmd(
                    [self.shell, "-c", SOURCED_PRELUDE, self.shell, path, env_dump],
                    check=True,
                    env=env,
                )

            with open(env_dump, "rb") as file_obj:
                raw = file_obj.read()
            if ENV_END_MARKER not in raw.split(b"\0"):
                raise BootstrapError(f"{path} ended without reporting its environment")
            self.env = self.parse_env_dump(raw)
        finally:
            try:
                os.remove(env_dump)
            except OSError:
                pass

    @staticmethod
    def parse_env_dump(raw: bytes) -> Dict[str, str]:
        env: Dict[str, str] = {}
        for entry in raw.split(b"\0"):
            if not entry or b"=" not in entry:
                continue
            key, value = entry.split(b"=", 1)
            name = key.decode("utf-8", errors="replace")
            if name in _SOURCED_INTERNALS or name.startswith("BASH_FUNC_"):
                continue
            env[name] = value.decode("utf-8", errors="replace")
        return env
