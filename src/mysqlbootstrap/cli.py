import logging
import os

import click

from .constants import DEFAULT_CONFIG_PATH
from .core import MySQLBootstrap
from .errors import BootstrapError
from .logging_config import LOGGER_NAME, configure_logging
from .models import EntrypointSettings
from .services.config_loader import ConfigLoader

LOG_FORMATS = ("plain", "rich")

# Entrypoint options must not collide with server flags, and --help belongs
# to the server.
CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
    "help_option_names": [],
}


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def _reexec_options(config_path, init_dir, log_format, verbose):
    """Entrypoint options replayed after dropping privileges."""
    options = []
    if config_path:
        options.append(f"--entrypoint-config={config_path}")
    options.append(f"--entrypoint-init-dir={init_dir}")
    options.append(f"--entrypoint-log-format={log_format}")
    if verbose:
        options.append("--entrypoint-verbose")
    return options


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--entrypoint-config",
    "config",
    required=False,
    type=click.Path(),
    envvar="MYSQL_ENTRYPOINT_CONFIG",
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_PATH} if present.",
)
@click.option(
    "--entrypoint-init-dir",
    "init_dir",
    required=False,
    type=click.Path(),
    envvar="MYSQL_ENTRYPOINT_INITDB_DIR",
    help="Directory with *.sh and *.sql[.gz|.bz2|.xz|.zst] files run on first boot.",
)
@click.option(
    "--entrypoint-log-format",
    "log_format",
    required=False,
    type=click.Choice(LOG_FORMATS),
    envvar="MYSQL_ENTRYPOINT_LOG_FORMAT",
    help="plain (container log lines) or rich (interactive terminals).",
)
@click.option(
    "--entrypoint-dry-run",
    "dry_run",
    is_flag=True,
    default=None,
    envvar="MYSQL_ENTRYPOINT_DRY_RUN",
    help="Print the bootstrap plan without creating directories or starting servers.",
)
@click.option(
    "--entrypoint-verbose",
    "verbose",
    is_flag=True,
    default=None,
    envvar="MYSQL_ENTRYPOINT_VERBOSE",
    help="Enable verbose logging",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def main(config, init_dir, log_format, dry_run, verbose, args):
    """Prepare the MySQL data directory on first boot, then exec the server."""
    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None and os.path.exists(DEFAULT_CONFIG_PATH):
            resolved_config = DEFAULT_CONFIG_PATH

        config_values = config_loader.load(resolved_config)
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    defaults = EntrypointSettings()
    init_dir = _resolve_option(
        init_dir, config_values, "init_scripts_dir", default=defaults.init_scripts_dir
    )
    log_format = _resolve_option(log_format, config_values, "log_format", default="plain")
    if log_format not in LOG_FORMATS:
        raise click.ClickException(
            f"Invalid log_format '{log_format}'. Expected one of: {', '.join(LOG_FORMATS)}"
        )
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    dry_run = bool(_resolve_option(dry_run, config_values, "dry_run", default=False))

    settings = EntrypointSettings(
        init_scripts_dir=str(init_dir),
        service_user=str(
            _resolve_option(None, config_values, "service_user", defaults.service_user)
        ),
        zoneinfo_dir=str(
            _resolve_option(None, config_values, "zoneinfo_dir", defaults.zoneinfo_dir)
        ),
        server_command=str(
            _resolve_option(None, config_values, "server_command", defaults.server_command)
        ),
        client_command=str(
            _resolve_option(None, config_values, "client_command", defaults.client_command)
        ),
        admin_command=str(
            _resolve_option(None, config_values, "admin_command", defaults.admin_command)
        ),
        tzinfo_command=str(
            _resolve_option(None, config_values, "tzinfo_command", defaults.tzinfo_command)
        ),
    )

    configure_logging(log_format=log_format, verbose=verbose)
    logging.getLogger(LOGGER_NAME).debug("Entrypoint settings: %s", settings)

    bootstrap = MySQLBootstrap(
        args=list(args),
        settings=settings,
        dry_run=dry_run,
        reexec_options=_reexec_options(
            resolved_config, settings.init_scripts_dir, log_format, verbose
        ),
    )
    raise SystemExit(bootstrap.run())


if __name__ == "__main__":
    main()
