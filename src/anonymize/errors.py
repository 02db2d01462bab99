"""
Error taxonomy for anonymized exports.

Every fatal error names the table it happened on (when there is one) so the
operator can tell how far a failed dump got. Nothing here is retried.
"""


class AnonymizeError(Exception):
    """Base exception for anonymized export errors."""

    def __init__(self, message: str, table: str | None = None):
        self.table = table
        if table:
            message = f"{table}: {message}"
        super().__init__(message)


class ConfigurationError(AnonymizeError):
    """Raised for malformed or contradictory rules, seeds or connection settings."""

    pass


class IntrospectionError(AnonymizeError):
    """Raised when a catalog metadata query fails."""

    pass


class ExportError(AnonymizeError):
    """Raised when a table's bulk export fails."""

    pass


class SinkError(AnonymizeError):
    """Raised when writing to the output destination fails."""

    pass


class SetupError(AnonymizeError):
    """Raised when the server-side transform functions are missing or cannot be installed."""

    pass
