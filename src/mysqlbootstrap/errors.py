"""Domain errors for mysqlbootstrap."""


class BootstrapError(RuntimeError):
    """Raised when the container bootstrap cannot continue safely."""


class ConfigConflictError(BootstrapError):
    """Raised when two mutually exclusive configuration sources are both set."""


class MissingCredentialError(BootstrapError):
    """Raised when a fresh data directory has no root password option."""


class IntrospectionError(BootstrapError):
    """Raised when the server binary cannot report its own configuration."""


class TemporaryServerError(BootstrapError):
    """Raised when the bootstrap-mode server fails to start or stop."""


class SQLBatchError(BootstrapError):
    """Raised when an administrative statement fails or is issued out of order."""


class InitScriptError(BootstrapError):
    """Raised when a user-supplied init script or SQL file fails."""
