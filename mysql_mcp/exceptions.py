"""Exception types raised by the MySQL MCP broker.

Permission denials are not exceptions: they are returned as error envelopes
so the calling session can read them and continue.
"""


class SQLParseError(ValueError):
    """SQL text could not be split into classifiable statements."""


class PoolCreationError(ConnectionError):
    """The driver could not build a connection pool."""


class NoActiveConnectionError(ConnectionError):
    """A query was issued while no named connection is selected."""


class UnknownConnectionError(LookupError):
    """A connection id is not present in the loaded profiles."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection configuration not found for ID: {connection_id}")


class ConnectionConfigError(ValueError):
    """The connection profile store is malformed."""
