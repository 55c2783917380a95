"""
Exceptions raised by the MongoDB fixture module.

Configuration, connection and operation errors signal setup problems and
abort the current test (or the whole session when raised during
initialization). Expectation failures are assertion errors and surface
through pytest's normal failure reporting.
"""


class MongoFixtureError(Exception):
    """Base class for fixture module errors."""

    def __init__(self, message: str, module: str = "MongoDb"):
        self.module = module
        self.message = message
        super().__init__(f"[{module}] {message}")


class ConfigurationError(MongoFixtureError):
    """Raised when the module is misconfigured or has no usable connection."""
    pass


class DatabaseConnectionError(MongoFixtureError):
    """Raised when the database client cannot be created."""
    pass


class OperationError(MongoFixtureError):
    """Raised when cleanup, dump loading or a collection operation fails."""
    pass


class ExpectationFailedError(AssertionError):
    """Raised when an assertion cannot be evaluated against a single target."""
    pass


__all__ = [
    "MongoFixtureError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "OperationError",
    "ExpectationFailedError",
]
