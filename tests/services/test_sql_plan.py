import pytest

from mysqlbootstrap.errors import SQLBatchError
from mysqlbootstrap.models import AccountRef, StatementKind
from mysqlbootstrap.services.sql_plan import (
    BootstrapPlan,
    escape_grant_wildcards,
    quote_identifier,
    quote_string,
)


def test_quote_string_escapes_quotes_and_backslashes():
    assert quote_string("it's") == "'it\\'s'"
    assert quote_string("a\\b") == "'a\\\\b'"


def test_quote_identifier_doubles_backticks():
    assert quote_identifier("shop`db") == "`shop``db`"


def test_escape_grant_wildcards():
    assert escape_grant_wildcards("demo_shop") == "demo\\_shop"
    assert escape_grant_wildcards("100%") == "100\\%"


def test_grant_requires_known_account():
    plan = BootstrapPlan()

    with pytest.raises(SQLBatchError, match="before the account was created"):
        plan.grant("ALL", "*.*", AccountRef("app", "%"))


def test_provision_account_creates_before_granting():
    account = AccountRef("root", "10.0.0.%")
    plan = BootstrapPlan().provision_account(
        account, "pw", "ALL", "*.*", with_grant_option=True
    )

    kinds = [statement.kind for statement in plan]
    assert kinds == [StatementKind.CREATE_USER, StatementKind.GRANT]
    assert plan.statements[1].text == (
        "GRANT ALL ON *.* TO 'root'@'10.0.0.%' WITH GRANT OPTION;"
    )


def test_render_redacted_hides_passwords():
    plan = BootstrapPlan().alter_user_password(AccountRef("root", "localhost"), "topsecret")

    assert "topsecret" in plan.render()
    assert all("topsecret" not in line for line in plan.render_redacted())
    assert plan.render_redacted() == ["ALTER USER 'root'@'localhost' IDENTIFIED BY '********';"]


def test_database_statements_quote_identifiers():
    plan = BootstrapPlan().drop_database("test").create_database("shop")

    assert plan.render() == (
        "DROP DATABASE IF EXISTS `test`;\nCREATE DATABASE IF NOT EXISTS `shop`;\n"
    )
    assert len(plan) == 2
