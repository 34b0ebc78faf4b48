"""Filesystem helpers for mysqlbootstrap."""

import logging
import os
import pwd
from typing import Callable, Iterable, List, Optional

from mysqlbootstrap.constants import DIR_MODE
from mysqlbootstrap.errors import BootstrapError
from mysqlbootstrap.models import ServerConfig


class FileSystemService:
    """Encapsulates directory and ownership side effects."""

    def __init__(self, logger: logging.Logger, geteuid: Callable[[], int] = os.geteuid):
        self.logger = logger
        self.geteuid = geteuid

    @staticmethod
    def is_initialized(server_config: ServerConfig) -> bool:
        return os.path.isdir(os.path.join(server_config.data_dir, "mysql"))

    @staticmethod
    def required_directories(server_config: ServerConfig) -> List[str]:
        directories = {server_config.data_dir, os.path.dirname(server_config.socket)}

        for log_path in (server_config.general_log_file, server_config.pid_file):
            if log_path:
                directories.add(os.path.dirname(log_path))
        if server_config.secure_file_priv:
            directories.add(server_config.secure_file_priv)

        return sorted(directory for directory in directories if directory)

    def prepare_directories(self, server_config: ServerConfig, service_user: str) -> List[str]:
        directories = self.required_directories(server_config)
        for directory in directories:
            try:
                os.makedirs(directory, mode=DIR_MODE, exist_ok=True)
            except OSError as exc:
                raise BootstrapError(f"Could not create directory {directory}: {exc}") from exc

        if self.geteuid() == 0:
            self.normalize_ownership(directories, self._service_uid(service_user))
        return directories

    def normalize_ownership(self, roots: Iterable[str], uid: int):
        for root in roots:
            for path in self._walk(root):
                try:
                    if os.lstat(path).st_uid == uid:
                        continue
                    os.chown(path, uid, -1, follow_symlinks=False)
                except OSError as exc:
                    raise BootstrapError(f"Could not change owner of {path}: {exc}") from exc

    def reconcile_socket(self, configured_socket: str, default_socket: Optional[str]):
        """Links the server's built-in socket path to the configured one."""
        if not default_socket or default_socket == configured_socket:
            return

        try:
            if os.path.lexists(default_socket):
                os.remove(default_socket)
            os.symlink(configured_socket, default_socket)
            self.logger.info("Linked '%s' -> '%s'", default_socket, configured_socket)
        except OSError as exc:
            self.logger.warning(
                "Could not link default socket %s to %s: %s",
                default_socket,
                configured_socket,
                exc,
            )

    @staticmethod
    def _walk(root: str):
        if not os.path.lexists(root):
            return
        yield root
        if os.path.islink(root) or not os.path.isdir(root):
            return
        for current_root, dirs, files in os.walk(root):
            for name in dirs + files:
                yield os.path.join(current_root, name)

    @staticmethod
    def _service_uid(service_user: str) -> int:
        try:
            return pwd.getpwnam(service_user).pw_uid
        except KeyError as exc:
            raise BootstrapError(f"System user '{service_user}' not found.") from exc
