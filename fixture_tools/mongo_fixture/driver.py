"""
================================================================================
MongoDB Driver
================================================================================

Thin layer over pymongo used by the fixture module:

- Connection creation from a DSN (database name after the host)
- Database cleanup (drops every non-system collection)
- Dump loading (``.json`` through pymongo, anything else through the shell)
- Collection access through a capability object chosen once per client

Two client shapes are supported. ``ModernClient`` talks to collections that
expose the CRUD API (``insert_one`` / ``count_documents``); ``LegacyClient``
covers the older ``insert`` / ``count`` surface.

================================================================================
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from bson import json_util
from loguru import logger
from pymongo import MongoClient
from pymongo.uri_parser import parse_uri

from fixture_tools.common import mask_uri

from .errors import ConfigurationError


# ============================================================
# Collection Access Variants
# ============================================================

class CollectionAccess(ABC):
    """Operations whose spelling differs between client generations."""

    name = "abstract"

    @abstractmethod
    def insert(self, collection, document: Dict[str, Any]) -> str:
        """Inserts one document and returns its id as a string."""

    @abstractmethod
    def count(self, collection, criteria: Mapping[str, Any]) -> int:
        """Counts documents matching ``criteria``."""

    @abstractmethod
    def collection_names(self, database) -> List[str]:
        """Lists collection names of ``database``."""

    def find_one(self, collection, criteria: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return collection.find_one(dict(criteria))

    def find(self, collection, criteria: Mapping[str, Any]) -> Iterable[Dict[str, Any]]:
        return collection.find(dict(criteria))


class ModernClient(CollectionAccess):
    name = "modern"

    def insert(self, collection, document: Dict[str, Any]) -> str:
        result = collection.insert_one(document)
        return str(result.inserted_id)

    def count(self, collection, criteria: Mapping[str, Any]) -> int:
        return collection.count_documents(dict(criteria))

    def collection_names(self, database) -> List[str]:
        return database.list_collection_names()


class LegacyClient(CollectionAccess):
    name = "legacy"

    def insert(self, collection, document: Dict[str, Any]) -> str:
        # insert() stores the generated _id on the document itself
        collection.insert(document)
        return str(document["_id"])

    def count(self, collection, criteria: Mapping[str, Any]) -> int:
        return collection.count(dict(criteria))

    def collection_names(self, database) -> List[str]:
        return database.collection_names()


def select_access(database) -> CollectionAccess:
    """
    Picks the access variant for the collections produced by ``database``.
    """
    probe = database.get_collection("fixture_probe")
    if hasattr(probe, "insert_one") and hasattr(probe, "count_documents"):
        return ModernClient()
    return LegacyClient()


# ============================================================
# Driver
# ============================================================

class MongoDbDriver:
    """
    Owns one client and the currently selected database.

    Usage:
        driver = MongoDbDriver.create("mongodb://localhost:27017/app_test")
        driver.cleanup()
        driver.load(Path("tests/_data/dump.js"))
    """

    def __init__(
        self,
        client,
        dsn: str,
        database_name: str,
        user: str = None,
        password: str = None,
        shell: str = "mongosh",
    ):
        self.client = client
        self.dsn = dsn
        self.database_name = database_name
        self.user = user
        self.password = password
        self.shell = shell
        self.access = select_access(client[database_name])
        logger.debug(f"Using {self.access.name} collection access for {mask_uri(dsn)}")

    @classmethod
    def create(
        cls,
        dsn: str,
        user: str = None,
        password: str = None,
        shell: str = "mongosh",
        client_factory: Callable[..., Any] = None,
    ) -> "MongoDbDriver":
        """
        Connects to the database named in ``dsn`` and verifies the server answers.

        Raises:
            ConfigurationError: if the DSN has no database name.
            pymongo.errors.PyMongoError: if the client cannot be created or
                the server does not respond.
        """
        database_name = parse_uri(dsn).get("database")
        if not database_name:
            raise ConfigurationError(
                f"Database name is missing in dsn {mask_uri(dsn)}. "
                "Specify it after the host, e.g. mongodb://localhost:27017/app_test"
            )

        client_factory = client_factory or MongoClient
        kwargs = {}
        if user:
            kwargs["username"] = user
            kwargs["password"] = password

        client = client_factory(dsn, **kwargs)
        client.admin.command("ping")
        logger.info(f"Connected to MongoDB: {mask_uri(dsn)}")

        return cls(client, dsn, database_name, user=user, password=password, shell=shell)

    def get_database(self):
        """Returns the active database handle, or None once closed."""
        if self.client is None:
            return None
        return self.client[self.database_name]

    def set_database(self, name: str) -> None:
        self.database_name = name
        logger.debug(f"Switched active database to {name}")

    def select_collection(self, name: str):
        return self.get_database()[name]

    # --------------------------------------------------------
    # Collection operations
    # --------------------------------------------------------

    def insert(self, collection: str, document: Dict[str, Any]) -> str:
        return self.access.insert(self.select_collection(collection), document)

    def count(self, collection: str, criteria: Mapping[str, Any]) -> int:
        return self.access.count(self.select_collection(collection), criteria)

    def find_one(self, collection: str, criteria: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return self.access.find_one(self.select_collection(collection), criteria)

    def find(self, collection: str, criteria: Mapping[str, Any]) -> Iterable[Dict[str, Any]]:
        return self.access.find(self.select_collection(collection), criteria)

    # --------------------------------------------------------
    # Fixture operations
    # --------------------------------------------------------

    def cleanup(self) -> List[str]:
        """
        Drops every collection of the active database except ``system.*``.

        Returns:
            Names of the dropped collections.
        """
        database = self.get_database()
        dropped = []
        for name in self.access.collection_names(database):
            if name.startswith("system."):
                continue
            database.drop_collection(name)
            dropped.append(name)
        logger.info(f"Cleaned database {self.database_name}: dropped {len(dropped)} collections")
        return dropped

    def load(self, dump_file: Path) -> None:
        """
        Loads a dump into the active database.

        ``.json`` dumps hold a mapping of collection name to documents in
        MongoDB extended JSON. Any other file is executed by the shell.
        """
        dump_file = Path(dump_file)
        if dump_file.suffix.lower() == ".json":
            self._load_json(dump_file)
        else:
            self._load_with_shell(dump_file)

    def _load_json(self, dump_file: Path) -> None:
        data = json_util.loads(dump_file.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(
                f"JSON dump {dump_file} must be an object mapping collection names to documents"
            )

        total = 0
        for collection, documents in data.items():
            if isinstance(documents, dict):
                documents = [documents]
            for document in documents:
                self.insert(collection, document)
                total += 1
        logger.info(f"Loaded {total} documents into {len(data)} collections from {dump_file}")

    def shell_command(self, dump_file: Path) -> List[str]:
        cmd = [self.shell, "--quiet", self._database_uri()]
        if self.user:
            cmd.extend(["--username", self.user, "--password", self.password or ""])
        cmd.append(str(dump_file))
        return cmd

    def _load_with_shell(self, dump_file: Path) -> None:
        cmd = self.shell_command(dump_file)
        logger.debug(f"Executing dump with {self.shell}: {dump_file}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise RuntimeError(
                f"Shell binary '{self.shell}' not found. Install it or set mongodb.shell"
            ) from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise RuntimeError(
                f"{self.shell} exited with code {result.returncode} loading {dump_file}: {output}"
            )
        logger.info(f"Loaded dump {dump_file} into {self.database_name}")

    def _database_uri(self) -> str:
        """The DSN pointed at the active database."""
        parts = urlsplit(self.dsn)
        return urlunsplit(parts._replace(path=f"/{self.database_name}"))

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")


__all__ = [
    "CollectionAccess",
    "ModernClient",
    "LegacyClient",
    "select_access",
    "MongoDbDriver",
]
