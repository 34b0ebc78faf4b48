import logging
import os
from typing import Callable, Dict, List, Mapping, Optional

from rich.console import Console
from rich.table import Table

from .constants import HELP_ARGS
from .errors import BootstrapError
from .models import CredentialSet, EntrypointSettings, Handoff, ServerConfig
from .services.bootstrap_sql import BootstrapSqlService
from .services.command_runner import CommandRunner
from .services.credentials import CredentialResolver
from .services.filesystem import FileSystemService
from .services.handoff import HandoffService
from .services.init_scripts import InitScriptService
from .services.introspection import IntrospectionService
from .services.sql_client import SqlClient
from .services.temp_server import TemporaryServer

console = Console()
logger = logging.getLogger("mysqlbootstrap")


class MySQLBootstrap:
    def __init__(
        self,
        args: List[str],
        environ: Optional[Mapping[str, str]] = None,
        settings: Optional[EntrypointSettings] = None,
        dry_run: bool = False,
        geteuid: Callable[[], int] = os.geteuid,
        reexec_options: Optional[List[str]] = None,
    ):
        self.settings = settings or EntrypointSettings()
        self.args = self.normalize_args(args, self.settings.server_command)
        self.environ: Dict[str, str] = dict(os.environ if environ is None else environ)
        self.dry_run = dry_run
        self.geteuid = geteuid
        self.reexec_options = list(reexec_options or [])

        self.server_config: Optional[ServerConfig] = None
        self.credentials: Optional[CredentialSet] = None
        self.child_env: Dict[str, str] = dict(self.environ)
        self.temp_server: Optional[TemporaryServer] = None

        self.command_runner = CommandRunner(logger=logger)
        self.introspection_service = IntrospectionService(
            logger=logger,
            server_command=self.settings.server_command,
        )
        self.credential_resolver = CredentialResolver(logger=logger, environ=self.environ)
        self.filesystem_service = FileSystemService(logger=logger, geteuid=geteuid)
        self.handoff_service = HandoffService(logger=logger, geteuid=geteuid)

    @staticmethod
    def normalize_args(args: List[str], server_command: str) -> List[str]:
        args = list(args)
        if not args or args[0].startswith("-"):
            return [server_command] + args
        return args

    def _run_cmd(self, cmd: List[str], **kwargs):
        return self.command_runner.run(cmd, **kwargs)

    def _run_streaming(self, cmd: List[str], source, **kwargs):
        return self.command_runner.run_streaming(cmd, source, **kwargs)

    def is_server_command(self) -> bool:
        return self.args[0] == self.settings.server_command

    def wants_help(self) -> bool:
        return any(arg in HELP_ARGS for arg in self.args)

    def introspect(self) -> ServerConfig:
        self.introspection_service.check_config(self.args, self._run_cmd)
        self.server_config = self.introspection_service.load_server_config(
            self.args,
            self._run_cmd,
        )
        return self.server_config

    def resolve_credentials(self) -> CredentialSet:
        self.credentials, self.child_env = self.credential_resolver.resolve()
        return self.credentials

    def is_initialized(self) -> bool:
        return self.filesystem_service.is_initialized(self.server_config)

    def prepare_directories(self):
        self.filesystem_service.prepare_directories(
            self.server_config,
            self.settings.service_user,
        )

    def reconcile_socket(self):
        default_socket = self.introspection_service.default_socket(self._run_cmd)
        self.filesystem_service.reconcile_socket(self.server_config.socket, default_socket)

    def build_sql_client(self) -> SqlClient:
        return SqlClient(
            logger=logger,
            run_cmd=self._run_cmd,
            run_streaming=self._run_streaming,
            socket=self.server_config.socket,
            client_command=self.settings.client_command,
            env=self.child_env,
        )

    def build_bootstrap_sql_service(self, sql_client: SqlClient) -> BootstrapSqlService:
        return BootstrapSqlService(
            logger=logger,
            sql_client=sql_client,
            run_cmd=self._run_cmd,
            tzinfo_command=self.settings.tzinfo_command,
            zoneinfo_dir=self.settings.zoneinfo_dir,
        )

    def build_init_script_service(self, sql_client: SqlClient) -> InitScriptService:
        return InitScriptService(
            logger=logger,
            sql_client=sql_client,
            run_cmd=self._run_cmd,
            env=self.child_env,
        )

    def check_init_dir(self):
        init_dir = self.settings.init_scripts_dir
        if os.path.exists(init_dir) and not os.access(init_dir, os.R_OK | os.X_OK):
            raise BootstrapError(f"Init scripts directory is not readable: {init_dir}")

    def initialize_database(self):
        self.check_init_dir()

        self.temp_server = TemporaryServer(
            logger=logger,
            run_cmd=self._run_cmd,
            server_argv=self.args,
            socket=self.server_config.socket,
            admin_command=self.settings.admin_command,
        )
        self.temp_server.initialize_data_dir()
        self.temp_server.start()

        self.reconcile_socket()

        sql_client = self.build_sql_client()
        bootstrap_sql = self.build_bootstrap_sql_service(sql_client)
        credentials = bootstrap_sql.apply(self.credentials)
        if credentials.root_password:
            self.child_env["MYSQL_ROOT_PASSWORD"] = credentials.root_password

        init_scripts = self.build_init_script_service(sql_client)
        self.child_env = init_scripts.run_all(self.settings.init_scripts_dir, credentials)

        bootstrap_sql.expire_root_password(credentials)

        self.temp_server.stop(credentials.root_password)
        self.credentials = credentials
        logger.info("MySQL init process done. Ready for start up.")

    def render_plan(self, initialized: bool):
        """Prints what a real run would do without touching anything."""
        table = Table(title="Bootstrap plan")
        table.add_column("#", justify="right")
        table.add_column("Action")

        if initialized:
            table.add_row("1", f"Data directory {self.server_config.data_dir} is initialized")
            table.add_row("2", "Reconcile default socket path")
        else:
            sql_client = self.build_sql_client()
            bootstrap_sql = self.build_bootstrap_sql_service(sql_client)
            plan = bootstrap_sql.build_bootstrap_plan(self.credentials)
            init_scripts = self.build_init_script_service(sql_client)

            rows = [f"Initialize data directory {self.server_config.data_dir}"]
            rows.append("Start temporary server without networking")
            if not self.credentials.skip_tzinfo:
                rows.append(f"Load time zone tables from {self.settings.zoneinfo_dir}")
            rows.extend(plan.render_redacted())
            for path, action in init_scripts.plan(self.settings.init_scripts_dir):
                rows.append(f"{action or 'ignore'}: {path}")
            if self.credentials.onetime_password:
                rows.extend(bootstrap_sql.build_expiry_plan(self.credentials).render_redacted())
            rows.append("Stop temporary server")

            for index, row in enumerate(rows, start=1):
                table.add_row(str(index), row)

        table.add_row("", f"exec {' '.join(self.args)}")
        console.print(table)

    def exec_handoff(self) -> Handoff:
        return Handoff(kind=Handoff.EXEC, argv=list(self.args), env=dict(self.child_env))

    def bootstrap(self) -> Optional[Handoff]:
        """Runs every first-boot stage and returns the terminal handoff decision."""
        if not self.is_server_command() or self.wants_help():
            return self.exec_handoff()

        server_version = self.introspection_service.server_version(self._run_cmd)
        logger.info(
            "Entrypoint script for MySQL Server %s started.",
            server_version or "<unknown version>",
        )

        self.introspect()
        self.resolve_credentials()

        initialized = self.is_initialized()
        if not initialized:
            self.introspection_service.ensure_supported_version(server_version)
            self.credential_resolver.verify_minimum(self.credentials)

        if self.dry_run:
            self.render_plan(initialized)
            return None

        self.prepare_directories()

        if self.geteuid() == 0:
            return Handoff(
                kind=Handoff.REEXEC,
                argv=HandoffService.reexec_argv(self.args, self.reexec_options),
                env=dict(self.child_env),
                user=self.settings.service_user,
            )

        if initialized:
            self.reconcile_socket()
        else:
            self.initialize_database()

        return self.exec_handoff()

    def run(self) -> int:
        try:
            handoff = self.bootstrap()
            if handoff is None:
                return 0
            self.handoff_service.execute(handoff)
            return 0
        except KeyboardInterrupt:
            logger.error("Operation cancelled by user")
            return 1
        except BootstrapError as exc:
            logger.error(str(exc))
            return 1
        except Exception:
            logger.exception("Unexpected error")
            return 1
