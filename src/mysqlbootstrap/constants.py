"""Filesystem and naming constants shared across services."""

DIR_MODE = 0o755
PASSFILE_MODE = 0o600

COMPONENT_NAME = "Entrypoint"

SERVER_COMMAND = "mysqld"
CLIENT_COMMAND = "mysql"
ADMIN_COMMAND = "mysqladmin"
TZINFO_COMMAND = "mysql_tzinfo_to_sql"
ZSTD_COMMAND = "zstd"

SERVICE_USER = "mysql"
INIT_SCRIPTS_DIR = "/docker-entrypoint-initdb.d"
ZONEINFO_DIR = "/usr/share/zoneinfo"
DEFAULT_CONFIG_PATH = "/etc/mysql/entrypoint.yml"

DEFAULT_ROOT_HOST = "172.%.%.%"
PRIVATE_NETWORK_PREFIX = "172."
PRIVATE_NETWORK_HOST = "172.%.%.%"

HEALTHCHECK_USER = "ping"
HEALTHCHECK_PASSWORD = "pong"
SAMPLE_DATABASE = "test"

TZINFO_LOCAL_ZONE_ERROR = "Local time zone must be set--see zic manual page"
TZINFO_PLACEHOLDER_ZONE = "FCTY"

UNSET_CONFIG_VALUES = ("NULL", "(No default value)")
HELP_ARGS = ("-?", "--help", "--print-defaults", "-V", "--version")
MINIMUM_SERVER_VERSION = "5.7.6"
