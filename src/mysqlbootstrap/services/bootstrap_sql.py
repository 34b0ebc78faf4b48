"""Bootstrap SQL sequencing for a freshly initialized data directory."""

import base64
import dataclasses
import secrets
from typing import Callable

from mysqlbootstrap.constants import (
    HEALTHCHECK_PASSWORD,
    HEALTHCHECK_USER,
    PRIVATE_NETWORK_HOST,
    PRIVATE_NETWORK_PREFIX,
    SAMPLE_DATABASE,
    TZINFO_LOCAL_ZONE_ERROR,
    TZINFO_PLACEHOLDER_ZONE,
)
from mysqlbootstrap.errors import BootstrapError, SQLBatchError
from mysqlbootstrap.models import AccountRef, CredentialSet
from mysqlbootstrap.services.sql_plan import (
    BootstrapPlan,
    escape_grant_wildcards,
    quote_identifier,
)

ROOT_LOCALHOST = AccountRef("root", "localhost")
ALL_PRIVILEGES = "ALL"
GLOBAL_SCOPE = "*.*"


class BootstrapSqlService:
    """Builds and applies the ordered first-boot administrative statements."""

    RANDOM_PASSWORD_BYTES = 24

    def __init__(
        self,
        logger,
        sql_client,
        run_cmd: Callable,
        tzinfo_command: str,
        zoneinfo_dir: str,
        token_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        self.logger = logger
        self.sql_client = sql_client
        self.run_cmd = run_cmd
        self.tzinfo_command = tzinfo_command
        self.zoneinfo_dir = zoneinfo_dir
        self.token_bytes = token_bytes

    def generate_root_password(self) -> str:
        return base64.b64encode(self.token_bytes(self.RANDOM_PASSWORD_BYTES)).decode("ascii")

    def resolve_root_password(self, credentials: CredentialSet) -> CredentialSet:
        if not credentials.random_root_password:
            return credentials

        password = self.generate_root_password()
        self.logger.info("GENERATED ROOT PASSWORD: %s", password)
        return dataclasses.replace(credentials, root_password=password)

    def load_timezones(self):
        try:
            result = self.run_cmd(
                [self.tzinfo_command, self.zoneinfo_dir],
                check=True,
                capture_output=True,
            )
        except BootstrapError as exc:
            raise SQLBatchError(f"Could not convert time zone data: {exc}") from exc

        statements = (result.stdout or "").replace(
            TZINFO_LOCAL_ZONE_ERROR,
            TZINFO_PLACEHOLDER_ZONE,
        )
        self.sql_client.execute(statements, root_password=None, database="mysql")

    def build_bootstrap_plan(self, credentials: CredentialSet) -> BootstrapPlan:
        plan = BootstrapPlan()
        plan.session("SET autocommit = 1;")
        plan.session("SET @@SESSION.SQL_LOG_BIN=0;")

        plan.alter_user_password(ROOT_LOCALHOST, credentials.root_password)
        plan.grant(ALL_PRIVILEGES, GLOBAL_SCOPE, ROOT_LOCALHOST, with_grant_option=True)

        root_host = credentials.root_host
        if root_host and root_host != "localhost":
            plan.provision_account(
                AccountRef("root", root_host),
                credentials.root_password,
                ALL_PRIVILEGES,
                GLOBAL_SCOPE,
                with_grant_option=True,
            )

        if not credentials.healthcheck_disabled:
            ping_hosts = ["localhost", "%"]
            if root_host.startswith(PRIVATE_NETWORK_PREFIX):
                ping_hosts.append(PRIVATE_NETWORK_HOST)
            for host in ping_hosts:
                plan.provision_account(
                    AccountRef(HEALTHCHECK_USER, host),
                    HEALTHCHECK_PASSWORD,
                    "USAGE",
                    GLOBAL_SCOPE,
                )

        plan.drop_database(SAMPLE_DATABASE)

        if credentials.database:
            plan.create_database(credentials.database)

        if credentials.creates_app_user:
            app_account = AccountRef(credentials.user, "%")
            plan.create_user(app_account, credentials.password)
            if credentials.database:
                scope = f"{quote_identifier(escape_grant_wildcards(credentials.database))}.*"
                plan.grant(ALL_PRIVILEGES, scope, app_account)

        return plan

    def build_expiry_plan(self, credentials: CredentialSet) -> BootstrapPlan:
        plan = BootstrapPlan()
        plan.expire_password(ROOT_LOCALHOST)
        if credentials.root_host and credentials.root_host != "localhost":
            plan.expire_password(AccountRef("root", credentials.root_host))
        return plan

    def apply(self, credentials: CredentialSet) -> CredentialSet:
        """Runs time zone loading and the account plan; returns final credentials."""
        if credentials.skip_tzinfo:
            self.logger.info("Skipping time zone table population")
        else:
            self.load_timezones()

        credentials = self.resolve_root_password(credentials)
        plan = self.build_bootstrap_plan(credentials)

        if credentials.database:
            self.logger.info("Creating database %s", credentials.database)
        if credentials.creates_app_user:
            self.logger.info("Creating user %s", credentials.user)
            if credentials.database:
                self.logger.info(
                    "Granting %s access to %s", credentials.user, credentials.database
                )

        # Root still has the empty password from --initialize-insecure until
        # the first statement of this session replaces it.
        self.sql_client.execute(plan.render(), root_password=None, database="mysql")
        return credentials

    def expire_root_password(self, credentials: CredentialSet):
        if not credentials.onetime_password:
            return

        self.logger.info("Expiring root password")
        plan = self.build_expiry_plan(credentials)
        self.sql_client.execute(
            plan.render(),
            root_password=credentials.root_password,
            database="mysql",
        )
