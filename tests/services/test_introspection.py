import subprocess
import sys

import pytest

from mysqlbootstrap.errors import BootstrapError, IntrospectionError
from mysqlbootstrap.services.command_runner import CommandRunner
from mysqlbootstrap.services.introspection import IntrospectionService


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)


VERBOSE_HELP = """\
mysqld  Ver 8.0.36 for Linux on x86_64 (MySQL Community Server - GPL)
Starts the MySQL database server.

  --datadir=name      Path to the database root directory

Variables (--variable-name=value)
and boolean options {FALSE|TRUE}  Value (after reading options)
--------------------------------- ----------------------------------------
datadir                           /var/lib/mysql/
general-log-file                  /var/lib/mysql/db.log
pid-file                          /var/run/mysqld/mysqld.pid
secure-file-priv                  NULL
socket                            /var/run/mysqld/mysqld.sock
socket                            /tmp/ignored.sock
"""


def make_service():
    return IntrospectionService(logger=DummyLogger(), server_command="mysqld")


def test_parse_verbose_help_keeps_first_occurrence():
    values = IntrospectionService.parse_verbose_help(VERBOSE_HELP)

    assert values["datadir"] == "/var/lib/mysql/"
    assert values["socket"] == "/var/run/mysqld/mysqld.sock"
    assert "--datadir=name" not in values


def test_config_value_maps_sentinels_to_none():
    values = {"secure-file-priv": "NULL", "log-error": "(No default value)", "empty": ""}

    assert IntrospectionService.config_value(values, "secure-file-priv") is None
    assert IntrospectionService.config_value(values, "log-error") is None
    assert IntrospectionService.config_value(values, "empty") is None
    assert IntrospectionService.config_value(values, "missing") is None


def test_load_server_config_reads_effective_paths():
    calls = []

    def fake_run_cmd(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=VERBOSE_HELP, stderr="")

    server_config = make_service().load_server_config(["mysqld", "--user=mysql"], fake_run_cmd)

    assert server_config.data_dir == "/var/lib/mysql/"
    assert server_config.socket == "/var/run/mysqld/mysqld.sock"
    assert server_config.general_log_file == "/var/lib/mysql/db.log"
    assert server_config.pid_file == "/var/run/mysqld/mysqld.pid"
    assert server_config.secure_file_priv is None
    assert calls[0][:4] == ["mysqld", "--user=mysql", "--verbose", "--help"]
    assert calls[0][4].startswith("--log-bin-index=")


def test_load_server_config_requires_datadir():
    def fake_run_cmd(cmd, **kwargs):
        return subprocess.CompletedProcess(
            cmd, 0, stdout="socket /run/mysqld.sock\n", stderr=""
        )

    with pytest.raises(IntrospectionError, match="'datadir'"):
        make_service().load_server_config(["mysqld"], fake_run_cmd)


def test_check_config_reports_server_errors():
    seen = {}

    def fake_run_cmd(cmd, **kwargs):
        seen.update(kwargs)
        raise BootstrapError(
            f"Command failed (1): {' '.join(cmd)}\n[ERROR] unknown variable 'foo=bar'"
        )

    with pytest.raises(IntrospectionError) as exc_info:
        make_service().check_config(["mysqld", "--foo=bar"], fake_run_cmd)

    assert "mysqld failed while attempting to check config" in str(exc_info.value)
    assert "unknown variable 'foo=bar'" in str(exc_info.value)
    assert seen["check"] is True


def test_failed_config_check_yields_a_single_diagnostic():
    logger = DummyLogger()
    runner = CommandRunner(logger=logger)
    server_argv = [
        sys.executable,
        "-c",
        "import sys; sys.stderr.write('unknown option'); sys.exit(1)",
    ]

    with pytest.raises(IntrospectionError, match="unknown option"):
        IntrospectionService(logger, server_command="mysqld").check_config(
            server_argv, runner.run
        )

    assert logger.warnings == []


def test_default_socket_uses_no_defaults():
    calls = []

    def fake_run_cmd(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(
            cmd, 0, stdout="socket /var/run/mysqld/mysqld.sock\n", stderr=""
        )

    assert make_service().default_socket(fake_run_cmd) == "/var/run/mysqld/mysqld.sock"
    assert calls[0][:2] == ["mysqld", "--no-defaults"]


def test_default_socket_warns_on_failure():
    service = make_service()

    def fake_run_cmd(cmd, **kwargs):
        raise BootstrapError("Required command not found: mysqld")

    assert service.default_socket(fake_run_cmd) is None
    assert service.logger.warnings


def test_server_version_parses_banner():
    def fake_run_cmd(cmd, **kwargs):
        return subprocess.CompletedProcess(
            cmd, 0, stdout="mysqld  Ver 8.0.36-28 for Linux on x86_64\n", stderr=""
        )

    assert make_service().server_version(fake_run_cmd) == "8.0.36"


def test_ensure_supported_version_rejects_old_servers():
    service = make_service()

    service.ensure_supported_version("8.0.36")
    service.ensure_supported_version(None)
    with pytest.raises(BootstrapError, match="older than the minimum supported 5.7.6"):
        service.ensure_supported_version("5.6.51")
