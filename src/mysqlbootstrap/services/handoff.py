"""Process handoff: privilege de-escalation and exec of the final command."""

import os
import pwd
import sys
from typing import Callable, Dict, List, Sequence

from mysqlbootstrap.errors import BootstrapError
from mysqlbootstrap.models import Handoff


class HandoffService:
    """Replaces the entrypoint process with the next command."""

    def __init__(
        self,
        logger,
        execvpe: Callable = os.execvpe,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        self.logger = logger
        self.execvpe = execvpe
        self.geteuid = geteuid

    @staticmethod
    def reexec_argv(args: List[str], options: Sequence[str] = ()) -> List[str]:
        return [sys.executable, "-m", "mysqlbootstrap.cli"] + list(options) + list(args)

    def drop_privileges(self, user: str, env: Dict[str, str]):
        if self.geteuid() != 0:
            return

        try:
            pw = pwd.getpwnam(user)
        except KeyError as exc:
            raise BootstrapError(f"System user '{user}' not found.") from exc

        os.initgroups(pw.pw_name, pw.pw_gid)
        os.setgid(pw.pw_gid)
        os.setuid(pw.pw_uid)
        env["HOME"] = pw.pw_dir
        env["USER"] = pw.pw_name

    def execute(self, handoff: Handoff):
        env = dict(handoff.env)
        if handoff.kind == Handoff.REEXEC:
            self.logger.info("Switching to dedicated user '%s'", handoff.user)
            self.drop_privileges(handoff.user, env)

        sys.stdout.flush()
        sys.stderr.flush()
        try:
            self.execvpe(handoff.argv[0], handoff.argv, env)
        except OSError as exc:
            raise BootstrapError(f"Could not exec {handoff.argv[0]}: {exc}") from exc
