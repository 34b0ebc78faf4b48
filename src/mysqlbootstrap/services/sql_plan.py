"""Ordered administrative statement builder."""

from typing import List, Set

from mysqlbootstrap.errors import SQLBatchError
from mysqlbootstrap.models import AccountRef, SqlStatement, StatementKind

REDACTED = "'********'"


def quote_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def quote_account(account: AccountRef) -> str:
    return f"{quote_string(account.user)}@{quote_string(account.host)}"


def escape_grant_wildcards(database: str) -> str:
    """Makes ``_`` and ``%`` match literally in a database-level grant target."""
    return database.replace("\\", "\\\\").replace("_", "\\_").replace("%", "\\%")


class BootstrapPlan:
    """Collects statements in execution order.

    Accounts must be created or altered before they are granted anything;
    a grant for an unknown account raises instead of being reordered.
    """

    def __init__(self):
        self.statements: List[SqlStatement] = []
        self._known_accounts: Set[AccountRef] = set()

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)

    def session(self, text: str) -> "BootstrapPlan":
        self.statements.append(SqlStatement(StatementKind.SESSION, text))
        return self

    def alter_user_password(self, account: AccountRef, password: str) -> "BootstrapPlan":
        prefix = f"ALTER USER {quote_account(account)} IDENTIFIED BY"
        self.statements.append(
            SqlStatement(
                StatementKind.ALTER_USER,
                f"{prefix} {quote_string(password)};",
                account=account,
                redacted=f"{prefix} {REDACTED};",
            )
        )
        self._known_accounts.add(account)
        return self

    def create_user(self, account: AccountRef, password: str) -> "BootstrapPlan":
        prefix = f"CREATE USER IF NOT EXISTS {quote_account(account)} IDENTIFIED BY"
        self.statements.append(
            SqlStatement(
                StatementKind.CREATE_USER,
                f"{prefix} {quote_string(password)};",
                account=account,
                redacted=f"{prefix} {REDACTED};",
            )
        )
        self._known_accounts.add(account)
        return self

    def grant(
        self,
        privileges: str,
        scope: str,
        account: AccountRef,
        with_grant_option: bool = False,
    ) -> "BootstrapPlan":
        if account not in self._known_accounts:
            raise SQLBatchError(
                f"GRANT for {quote_account(account)} issued before the account was created."
            )

        text = f"GRANT {privileges} ON {scope} TO {quote_account(account)}"
        if with_grant_option:
            text = f"{text} WITH GRANT OPTION"
        self.statements.append(SqlStatement(StatementKind.GRANT, f"{text};", account=account))
        return self

    def provision_account(
        self,
        account: AccountRef,
        password: str,
        privileges: str,
        scope: str,
        with_grant_option: bool = False,
    ) -> "BootstrapPlan":
        self.create_user(account, password)
        return self.grant(privileges, scope, account, with_grant_option=with_grant_option)

    def drop_database(self, name: str) -> "BootstrapPlan":
        self.statements.append(
            SqlStatement(
                StatementKind.DROP_DATABASE,
                f"DROP DATABASE IF EXISTS {quote_identifier(name)};",
            )
        )
        return self

    def create_database(self, name: str) -> "BootstrapPlan":
        self.statements.append(
            SqlStatement(
                StatementKind.CREATE_DATABASE,
                f"CREATE DATABASE IF NOT EXISTS {quote_identifier(name)};",
            )
        )
        return self

    def expire_password(self, account: AccountRef) -> "BootstrapPlan":
        self.statements.append(
            SqlStatement(
                StatementKind.EXPIRE_PASSWORD,
                f"ALTER USER IF EXISTS {quote_account(account)} PASSWORD EXPIRE;",
                account=account,
            )
        )
        return self

    def render(self) -> str:
        return "\n".join(statement.text for statement in self.statements) + "\n"

    def render_redacted(self) -> List[str]:
        return [statement.display_text for statement in self.statements]
