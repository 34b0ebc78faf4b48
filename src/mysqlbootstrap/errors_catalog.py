"""Actionable error catalog for mysqlbootstrap."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "config_conflict": {
        "what": "Both {name} and {name}_FILE are set (but are exclusive).",
        "next": "Unset one of them; use {name}_FILE only for secrets mounted as files.",
    },
    "secret_file_unreadable": {
        "what": "Could not read {name}_FILE at {path}: {error}",
        "next": "Check that the secret is mounted and readable by the container user.",
    },
    "missing_root_password": {
        "what": "Database is uninitialized and password option is not specified.",
        "next": (
            "Set one of MYSQL_ROOT_PASSWORD, MYSQL_ALLOW_EMPTY_PASSWORD or "
            "MYSQL_RANDOM_ROOT_PASSWORD."
        ),
    },
    "root_user_not_allowed": {
        "what": 'MYSQL_USER="root" is not allowed.',
        "next": (
            "Use MYSQL_ROOT_PASSWORD, MYSQL_ALLOW_EMPTY_PASSWORD or "
            "MYSQL_RANDOM_ROOT_PASSWORD to configure the root account."
        ),
    },
    "config_check_failed": {
        "what": "{server} failed while attempting to check config. Command was: {command}",
        "next": "Fix the server configuration files or arguments reported above.",
    },
    "config_value_missing": {
        "what": "Server did not report a value for '{key}'.",
        "next": "Make sure '{key}' is configured or that the server binary is not a wrapper.",
    },
    "server_too_old": {
        "what": "Server version {version} is older than the minimum supported {minimum}.",
        "next": "Use an image that ships MySQL {minimum} or newer.",
    },
    "temp_server_start_failed": {
        "what": "Unable to start server.",
        "next": "Inspect the server error log in the data directory, then restart the container.",
    },
    "temp_server_stop_failed": {
        "what": "Unable to shut down server.",
        "next": "Stop the container; do not start another server on the same data directory.",
    },
    "init_script_failed": {
        "what": "Init file {path} failed.",
        "next": "Fix the script, remove the partially initialized data directory and retry.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
