"""Credential resolution from environment variables and secret files."""

from typing import Dict, Mapping, Tuple

from mysqlbootstrap.constants import DEFAULT_ROOT_HOST
from mysqlbootstrap.errors import BootstrapError, ConfigConflictError, MissingCredentialError
from mysqlbootstrap.errors_catalog import actionable_error
from mysqlbootstrap.models import CredentialSet

FILE_SUFFIX = "_FILE"

# environment name -> (CredentialSet field, default, is_flag)
CREDENTIAL_VARIABLES: Dict[str, Tuple[str, str, bool]] = {
    "MYSQL_ROOT_HOST": ("root_host", DEFAULT_ROOT_HOST, False),
    "MYSQL_DATABASE": ("database", "", False),
    "MYSQL_USER": ("user", "", False),
    "MYSQL_PASSWORD": ("password", "", False),
    "MYSQL_ROOT_PASSWORD": ("root_password", "", False),
    "MYSQL_ALLOW_EMPTY_PASSWORD": ("allow_empty_password", "", True),
    "MYSQL_RANDOM_ROOT_PASSWORD": ("random_root_password", "", True),
    "MYSQL_ONETIME_PASSWORD": ("onetime_password", "", True),
    "MYSQL_HEALTHCHECK_DISABLE": ("healthcheck_disabled", "", True),
    "MYSQL_INITDB_SKIP_TZINFO": ("skip_tzinfo", "", True),
}


class CredentialResolver:
    """Resolves each credential from ``NAME`` or ``NAME_FILE``, never both."""

    def __init__(self, logger, environ: Mapping[str, str]):
        self.logger = logger
        self.environ = dict(environ)

    def resolve_value(self, name: str, default: str = "") -> str:
        file_name = f"{name}{FILE_SUFFIX}"
        direct = self.environ.get(name, "")
        file_path = self.environ.get(file_name, "")

        if direct and file_path:
            raise ConfigConflictError(actionable_error("config_conflict", name=name))

        if direct:
            return direct
        if file_path:
            try:
                with open(file_path, "r", encoding="utf-8") as file_obj:
                    return file_obj.read().rstrip("\n")
            except OSError as exc:
                raise BootstrapError(
                    actionable_error(
                        "secret_file_unreadable",
                        name=name,
                        path=file_path,
                        error=str(exc),
                    )
                ) from exc
        return default

    def resolve(self) -> Tuple[CredentialSet, Dict[str, str]]:
        """Return the credential set and the environment handed to children.

        Conflicts are checked for every name before any secret file is read.
        """
        for name in CREDENTIAL_VARIABLES:
            if self.environ.get(name) and self.environ.get(f"{name}{FILE_SUFFIX}"):
                raise ConfigConflictError(actionable_error("config_conflict", name=name))

        values = {}
        child_env = dict(self.environ)
        for name, (field_name, default, is_flag) in CREDENTIAL_VARIABLES.items():
            value = self.resolve_value(name, default)
            values[field_name] = bool(value) if is_flag else value

            child_env.pop(f"{name}{FILE_SUFFIX}", None)
            if value:
                child_env[name] = value

        return CredentialSet(**values), child_env

    def verify_minimum(self, credentials: CredentialSet):
        """Checks a fresh data directory can be initialized with these credentials."""
        if not (
            credentials.root_password
            or credentials.allow_empty_password
            or credentials.random_root_password
        ):
            raise MissingCredentialError(actionable_error("missing_root_password"))

        if credentials.user == "root":
            raise BootstrapError(actionable_error("root_user_not_allowed"))

        if credentials.user and not credentials.password:
            self.logger.warning(
                "MYSQL_USER specified, but missing MYSQL_PASSWORD; MYSQL_USER will not be created"
            )
        elif credentials.password and not credentials.user:
            self.logger.warning(
                "MYSQL_PASSWORD specified, but missing MYSQL_USER; MYSQL_PASSWORD will be ignored"
            )
