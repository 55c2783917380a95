"""
================================================================================
MongoDB Fixture Module
================================================================================

Keeps a MongoDB database in a known state for every test and gives test
authors query/assertion helpers.

Lifecycle:
    1. ``_initialize()`` - once per session: validate the dump, connect,
       optionally clean the database and load the dump
    2. ``_before(test)`` - before every test: clean and reload unless the
       session start already did it for this test
    3. ``_after(test)`` - after every test: arm the next reload

Dump preparation:
    - ``.js`` files are executed by ``mongosh`` (or the configured shell),
      so they should contain plain shell statements such as
      ``db.users.insertOne({...})``
    - ``.json`` files map collection names to lists of documents
    - block comments are ignored when deciding whether a dump is empty

Usage:
    from fixture_tools.mongo_fixture import MongoDbModule

    module = MongoDbModule({"dsn": "mongodb://localhost:27017/app_test",
                            "dump": "tests/_data/dump.js"})
    module._initialize()
    module.see_in_collection("users", {"name": "miles"})

================================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

import allure
from bson.errors import BSONError
from loguru import logger
from pymongo.errors import PyMongoError

from fixture_tools.common import init_logger, mask_uri

from .config import MongoDbConfig
from .driver import MongoDbDriver
from .dump import DumpFile
from .errors import (
    ConfigurationError,
    DatabaseConnectionError,
    ExpectationFailedError,
    OperationError,
)


init_logger()


class PopulationState(str, Enum):
    NOT_YET_POPULATED = "not_yet_populated"
    POPULATED_THIS_SUITE = "populated_this_suite"
    AWAITING_NEXT_TEST = "awaiting_next_test"


_MISSING = object()


def _resolve_field(document: Mapping[str, Any], path: str) -> Any:
    """Follows a dotted path through embedded documents."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


class MongoDbModule:
    """
    Database fixture controller for one test session.

    The driver is created in ``_initialize`` and reused by every helper until
    ``close()`` is called.
    """

    def __init__(
        self,
        config: Union[MongoDbConfig, Mapping[str, Any]],
        driver_factory: Callable[..., MongoDbDriver] = None,
    ):
        """
        Args:
            config: ``MongoDbConfig`` or a mapping with the ``mongodb`` keys.
            driver_factory: Callable building the driver. Defaults to
                ``MongoDbDriver.create``.
        """
        if not isinstance(config, MongoDbConfig):
            config = MongoDbConfig.from_mapping(config)
        self.config = config
        self.driver_factory = driver_factory or MongoDbDriver.create

        self.driver: Optional[MongoDbDriver] = None
        self.dump_file: Optional[DumpFile] = None
        self.state = PopulationState.NOT_YET_POPULATED

    # ============================================================
    # Lifecycle hooks
    # ============================================================

    def _initialize(self) -> None:
        if self.config.needs_dump:
            dump_path = self.config.dump_path()
            if not dump_path.is_file():
                raise ConfigurationError(
                    "File with dump doesn't exist.\n"
                    f"Please, check path for dump file: {self.config.dump}"
                )
            self.dump_file = DumpFile.inspect(dump_path)

        try:
            self.driver = self.driver_factory(
                self.config.dsn,
                self.config.user,
                self.config.password,
                shell=self.config.shell,
            )
        except PyMongoError as e:
            raise DatabaseConnectionError(f"{e} while creating Mongo connection") from e

        logger.info(f"MongoDb module initialized for {mask_uri(self.config.dsn)}")

        if self.config.populate:
            self.cleanup()
            self.load_dump()
            self.state = PopulationState.POPULATED_THIS_SUITE

    def _before(self, test: Any = None) -> None:
        if self.config.cleanup and self.state != PopulationState.POPULATED_THIS_SUITE:
            logger.debug(f"Repopulating database before {getattr(test, 'name', test)}")
            self.cleanup()
            self.load_dump()

    def _after(self, test: Any = None) -> None:
        self.state = PopulationState.AWAITING_NEXT_TEST

    def close(self) -> None:
        if self.driver is not None:
            self.driver.close()

    # ============================================================
    # Fixture operations
    # ============================================================

    def cleanup(self) -> None:
        if self.driver is None or self.driver.get_database() is None:
            raise ConfigurationError(
                "No connection to database. Remove this module from config "
                "if you don't need database repopulation"
            )
        try:
            self.driver.cleanup()
        except Exception as e:
            raise OperationError(str(e)) from e

    def load_dump(self) -> None:
        if self.dump_file is None or self.dump_file.is_empty:
            return
        try:
            self.driver.load(self.dump_file.path)
        except Exception as e:
            raise OperationError(str(e)) from e

    def _call(self, action: str, collection: str, operation: Callable[[], Any]) -> Any:
        if self.driver is None:
            raise ConfigurationError("MongoDb module is not initialized. Call _initialize() first")
        try:
            return operation()
        except (PyMongoError, BSONError) as e:
            raise OperationError(f"Failed to {action} in collection '{collection}': {e}") from e

    # ============================================================
    # Helpers
    # ============================================================

    def use_database(self, db_name: str) -> None:
        """
        Specify the database to use.

        Example:
            mongo.use_database("db_1")
        """
        with allure.step(f"Use database {db_name}"):
            if self.driver is None:
                raise ConfigurationError("MongoDb module is not initialized. Call _initialize() first")
            self.driver.set_database(db_name)

    def have_in_collection(self, collection: str, data: Dict[str, Any]) -> str:
        """
        Inserts data into a collection and returns the new document id.

        Example:
            user_id = mongo.have_in_collection("users", {"name": "John"})
        """
        with allure.step(f"Insert document into {collection}"):
            inserted_id = self._call(
                "insert document", collection, lambda: self.driver.insert(collection, data)
            )
            logger.debug(f"Inserted document into {collection}: {inserted_id}")
            return inserted_id

    def see_in_collection(self, collection: str, criteria: Mapping[str, Any] = None) -> None:
        """
        Checks that a collection contains at least one matching document.

        Example:
            mongo.see_in_collection("users", {"name": "miles"})
        """
        criteria = criteria or {}
        with allure.step(f"See document in {collection}"):
            count = self.grab_collection_count(collection, criteria)
            if not count > 0:
                raise AssertionError(
                    f"Expected a document matching {criteria} in '{collection}', found none"
                )

    def dont_see_in_collection(self, collection: str, criteria: Mapping[str, Any] = None) -> None:
        """
        Checks that a collection contains no matching document.
        """
        criteria = criteria or {}
        with allure.step(f"Don't see document in {collection}"):
            count = self.grab_collection_count(collection, criteria)
            if not count < 1:
                raise AssertionError(
                    f"Expected no document matching {criteria} in '{collection}', found {count}"
                )

    def grab_from_collection(
        self,
        collection: str,
        criteria: Mapping[str, Any] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Returns the first document matching ``criteria`` or None.
        """
        criteria = criteria or {}
        return self._call(
            "find document", collection, lambda: self.driver.find_one(collection, criteria)
        )

    def grab_collection_count(self, collection: str, criteria: Mapping[str, Any] = None) -> int:
        """
        Returns the number of documents matching ``criteria``.

        Example:
            count = mongo.grab_collection_count("users", {"isAdmin": True})
        """
        criteria = criteria or {}
        return self._call(
            "count documents", collection, lambda: self.driver.count(collection, criteria)
        )

    def see_element_is_array(
        self,
        collection: str,
        criteria: Mapping[str, Any] = None,
        element_to_check: str = None
    ) -> None:
        """
        Asserts that exactly one matching document has an array at ``element_to_check``.

        Example:
            mongo.see_element_is_array("users", {"name": "John Doe"}, "data.skills")
        """
        with allure.step(f"See {element_to_check} is an array in {collection}"):
            count = self._count_element_matches(
                collection, criteria, element_to_check, lambda value: isinstance(value, list)
            )
            if count > 1:
                raise ExpectationFailedError(
                    "Error: you should test against a single element criteria "
                    "when asserting that elementIsArray"
                )
            if count != 1:
                raise AssertionError("Specified element is not a Mongo Array")

    def see_element_is_object(
        self,
        collection: str,
        criteria: Mapping[str, Any] = None,
        element_to_check: str = None
    ) -> None:
        """
        Asserts that exactly one matching document has an embedded document
        (not an array) at ``element_to_check``.

        Example:
            mongo.see_element_is_object("users", {"name": "John Doe"}, "data")
        """
        with allure.step(f"See {element_to_check} is an object in {collection}"):
            count = self._count_element_matches(
                collection, criteria, element_to_check, lambda value: isinstance(value, Mapping)
            )
            if count > 1:
                raise ExpectationFailedError(
                    "Error: you should test against a single element criteria "
                    "when asserting that elementIsObject"
                )
            if count != 1:
                raise AssertionError("Specified element is not a Mongo Object")

    def see_num_elements_in_collection(
        self,
        collection: str,
        expected: int,
        criteria: Mapping[str, Any] = None
    ) -> None:
        """
        Asserts the exact number of matching documents.

        Example:
            mongo.see_num_elements_in_collection("users", 2)
            mongo.see_num_elements_in_collection("users", 1, {"name": "miles"})
        """
        with allure.step(f"See {expected} documents in {collection}"):
            count = self.grab_collection_count(collection, criteria)
            # expected must be an int itself, not 2.0 or True
            if type(expected) is not int or count != expected:
                raise AssertionError(
                    f"Expected {expected} documents in '{collection}', found {count}"
                )

    def _count_element_matches(
        self,
        collection: str,
        criteria: Optional[Mapping[str, Any]],
        element: str,
        predicate: Callable[[Any], bool],
    ) -> int:
        # Type is checked client side; $where is unavailable on many servers
        if not element:
            raise ValueError("element_to_check is required")

        query = dict(criteria or {})
        exists = {element: {"$exists": True}}
        query = {"$and": [query, exists]} if element in query else {**query, **exists}

        def operation() -> int:
            return sum(
                1 for document in self.driver.find(collection, query)
                if predicate(_resolve_field(document, element))
            )

        return self._call("inspect element", collection, operation)


# ============================================================
# CLI Interface
# ============================================================

def main(argv=None):
    """
    CLI entry point: clean the configured database and load the dump once.
    """
    import argparse

    parser = argparse.ArgumentParser(description="Reset a MongoDB test database from its dump")
    parser.add_argument("--dsn", help="MongoDB DSN (defaults to mongodb.dsn)")
    parser.add_argument("--dump", help="Dump file relative to the project dir (defaults to mongodb.dump)")
    parser.add_argument("--user", help="Database user")
    parser.add_argument("--password", help="Database password")

    args = parser.parse_args(argv)

    from fixture_tools.common import get_config

    settings = dict(get_config("mongodb", {}) or {})
    for key in ("dsn", "dump", "user", "password"):
        value = getattr(args, key)
        if value:
            settings[key] = value
    settings["populate"] = True

    module = MongoDbModule(settings)
    try:
        module._initialize()
    finally:
        module.close()
    logger.info("Database reset complete")


if __name__ == "__main__":
    main()


__all__ = [
    "MongoDbModule",
    "PopulationState",
    "main",
]
