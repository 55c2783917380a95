"""
================================================================================
MongoDB Fixture Module
================================================================================

Resets a MongoDB database from a dump around every test and provides
assertion helpers for test scripts.

Exports:
    - MongoDbModule: Lifecycle controller and helper API
    - MongoDbConfig: Validated module configuration
    - MongoDbDriver: pymongo-backed driver (cleanup, dump loading)
    - ModernClient / LegacyClient: Collection access variants
    - DumpFile: Dump file inspection result
    - Errors: ConfigurationError, DatabaseConnectionError, OperationError,
      ExpectationFailedError

================================================================================
"""

from .config import MongoDbConfig
from .driver import CollectionAccess, LegacyClient, ModernClient, MongoDbDriver
from .dump import DumpFile
from .errors import (
    ConfigurationError,
    DatabaseConnectionError,
    ExpectationFailedError,
    MongoFixtureError,
    OperationError,
)
from .module import MongoDbModule, PopulationState

__all__ = [
    "MongoDbModule",
    "PopulationState",
    "MongoDbConfig",
    "MongoDbDriver",
    "CollectionAccess",
    "ModernClient",
    "LegacyClient",
    "DumpFile",
    "MongoFixtureError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "OperationError",
    "ExpectationFailedError",
]
