import gzip
import os
import shutil
import subprocess

import pytest

from mysqlbootstrap.errors import BootstrapError, InitScriptError
from mysqlbootstrap.models import CredentialSet
from mysqlbootstrap.services.command_runner import CommandRunner
from mysqlbootstrap.services.init_scripts import InitScriptService

requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash is not installed")


class DummyLogger:
    def __init__(self):
        self.infos = []
        self.warnings = []

    def debug(self, *_args, **_kwargs):
        return None

    def info(self, message, *args, **_kwargs):
        self.infos.append(message % args if args else message)

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)


class FakeSqlClient:
    socket = "/run/mysqld.sock"

    def __init__(self, events, client_command="mysql"):
        self.events = events
        self.client_command = client_command

    def execute_stream(self, source, root_password=None, database=None, env=None):
        self.events.append(("sql", source.read(), root_password, database))


def make_service(events, run_cmd=None, env=None, client_command="mysql"):
    def default_run_cmd(cmd, **kwargs):
        events.append(("exec", cmd[0]))
        return subprocess.CompletedProcess(cmd, 0)

    return InitScriptService(
        logger=DummyLogger(),
        sql_client=FakeSqlClient(events, client_command=client_command),
        run_cmd=run_cmd or default_run_cmd,
        env={"PATH": "/usr/bin"} if env is None else env,
    )


def make_bash_service(events, client_command="mysql"):
    runner = CommandRunner(logger=DummyLogger())
    return make_service(
        events,
        run_cmd=runner.run,
        env={"PATH": os.environ.get("PATH", os.defpath), "HOME": "/var/lib/mysql"},
        client_command=client_command,
    )


def write_script(path, executable, body="true\n"):
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    os.chmod(path, 0o755 if executable else 0o644)


def test_classify_by_suffix_and_mode(tmp_path):
    executable = tmp_path / "10-run.sh"
    sourced = tmp_path / "20-source.sh"
    write_script(executable, True)
    write_script(sourced, False)

    assert InitScriptService.classify(str(executable)) == "execute"
    assert InitScriptService.classify(str(sourced)) == "source"
    assert InitScriptService.classify("schema.sql") == "sql"
    assert InitScriptService.classify("dump.sql.gz") == "compressed_sql"
    assert InitScriptService.classify("dump.sql.bz2") == "compressed_sql"
    assert InitScriptService.classify("dump.sql.xz") == "compressed_sql"
    assert InitScriptService.classify("dump.sql.zst") == "zstd_sql"
    assert InitScriptService.classify("README.md") is None


def test_files_run_in_lexical_order_with_one_log_line_each(tmp_path):
    with gzip.open(tmp_path / "01-schema.sql.gz", "wb") as file_obj:
        file_obj.write(b"CREATE TABLE t (id INT);\n")
    write_script(tmp_path / "02-seed.sh", True)
    events = []
    service = make_service(events, env={"PATH": "/usr/bin", "MYSQL_DATABASE": "shop"})

    service.run_all(str(tmp_path), CredentialSet(root_password="pw", database="shop"))

    assert events == [
        ("sql", b"CREATE TABLE t (id INT);\n", "pw", "shop"),
        ("exec", str(tmp_path / "02-seed.sh")),
    ]
    assert service.logger.infos == [
        f"running {tmp_path / '01-schema.sql.gz'}",
        f"running {tmp_path / '02-seed.sh'}",
    ]


def test_unrecognized_files_are_ignored_with_warning(tmp_path):
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")
    (tmp_path / "schema.sql").write_text("SELECT 1;", encoding="utf-8")
    events = []
    service = make_service(events)

    service.run_all(str(tmp_path), CredentialSet(root_password="pw"))

    assert events == [("sql", b"SELECT 1;", "pw", None)]
    assert service.logger.warnings == [f"ignoring {tmp_path / 'notes.txt'}"]


def test_missing_init_directory_is_empty(tmp_path):
    assert InitScriptService.discover(str(tmp_path / "missing")) == []


def test_failing_script_names_the_file(tmp_path):
    write_script(tmp_path / "10-broken.sh", True)

    def failing_run_cmd(cmd, **kwargs):
        raise BootstrapError("Command failed (2): broken")

    service = make_service([], run_cmd=failing_run_cmd)

    with pytest.raises(InitScriptError, match="10-broken.sh failed"):
        service.run_all(str(tmp_path), CredentialSet(root_password="pw"))


def test_corrupt_compressed_file_fails(tmp_path):
    (tmp_path / "dump.sql.gz").write_bytes(b"not gzip at all")

    with pytest.raises(InitScriptError, match="dump.sql.gz failed"):
        make_service([]).run_all(str(tmp_path), CredentialSet(root_password="pw"))


def test_sourced_script_runs_through_shell_and_updates_env(tmp_path):
    write_script(tmp_path / "10-env.sh", False)
    seen = {}

    def fake_run_cmd(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["env"] = kwargs["env"]
        with open(cmd[-1], "wb") as dump:
            dump.write(
                b"PATH=/usr/bin\0EXTRA=value\0MYSQLBOOTSTRAP_SOCKET=/x\0"
                b"MYSQLBOOTSTRAP_ENV_END=1\0"
            )
        return subprocess.CompletedProcess(cmd, 0)

    service = make_service([], run_cmd=fake_run_cmd)
    env = service.run_all(str(tmp_path), CredentialSet(root_password="pw"))

    assert seen["cmd"][0] == "bash"
    assert seen["cmd"][-2] == str(tmp_path / "10-env.sh")
    assert seen["env"]["MYSQLBOOTSTRAP_SOCKET"] == "/run/mysqld.sock"
    assert env == {"PATH": "/usr/bin", "EXTRA": "value"}
    assert service.logger.infos == [f"sourcing {tmp_path / '10-env.sh'}"]


def test_incomplete_env_dump_is_fatal_and_keeps_env(tmp_path):
    write_script(tmp_path / "10-env.sh", False)

    def fake_run_cmd(cmd, **kwargs):
        with open(cmd[-1], "wb") as dump:
            dump.write(b"PATH=/usr/bin\0")
        return subprocess.CompletedProcess(cmd, 0)

    service = make_service([], run_cmd=fake_run_cmd)

    with pytest.raises(InitScriptError, match="without reporting its environment"):
        service.run_all(str(tmp_path), CredentialSet(root_password="pw"))
    assert service.env == {"PATH": "/usr/bin"}


@requires_bash
def test_failing_sql_in_sourced_script_is_fatal(tmp_path):
    write_script(
        tmp_path / "10-bad.sh",
        False,
        "docker_process_sql <<< 'SELECT 1'\necho unreachable\n",
    )
    service = make_bash_service([], client_command="false")

    with pytest.raises(InitScriptError, match="10-bad.sh failed"):
        service.run_all(str(tmp_path), CredentialSet(root_password="pw"))


@requires_bash
def test_failing_command_in_sourced_script_is_fatal(tmp_path):
    write_script(tmp_path / "10-bad.sh", False, "false\nexport AFTER=1\n")
    service = make_bash_service([])

    with pytest.raises(InitScriptError, match="10-bad.sh failed"):
        service.run_all(str(tmp_path), CredentialSet(root_password="pw"))
    assert "AFTER" not in service.env


@requires_bash
def test_exit_in_sourced_script_keeps_environment(tmp_path):
    write_script(tmp_path / "10-exit.sh", False, "GREETING=hi\nexit 0\n")
    service = make_bash_service([])

    env = service.run_all(str(tmp_path), CredentialSet(root_password="pw"))

    assert env["PATH"] == os.environ.get("PATH", os.defpath)
    assert env["HOME"] == "/var/lib/mysql"
    assert env["GREETING"] == "hi"
    assert not any(name.startswith("MYSQLBOOTSTRAP") for name in env)
    assert "__mysqlbootstrap_dump" not in env


@requires_bash
def test_database_set_by_sourced_script_applies_to_later_sql(tmp_path):
    write_script(tmp_path / "10-db.sh", False, "MYSQL_DATABASE=from_script\n")
    (tmp_path / "20-schema.sql").write_text("CREATE TABLE t (id INT);", encoding="utf-8")
    events = []
    service = make_bash_service(events)

    service.run_all(str(tmp_path), CredentialSet(root_password="pw", database="original"))

    assert events == [("sql", b"CREATE TABLE t (id INT);", "pw", "from_script")]


def test_parse_env_dump_skips_shell_internals():
    raw = (
        b"A=1\0BASH_FUNC_docker_process_sql%%=() {  true\n}\0SHLVL=1\0B=x=y\0"
        b"MYSQLBOOTSTRAP_ENV_END=1\0"
    )

    assert InitScriptService.parse_env_dump(raw) == {"A": "1", "B": "x=y"}
