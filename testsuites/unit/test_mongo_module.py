import sys

import pytest
from bson import ObjectId
from bson.errors import InvalidDocument
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from fixture_tools.mongo_fixture import (
    ConfigurationError,
    DatabaseConnectionError,
    ExpectationFailedError,
    MongoDbModule,
    OperationError,
    PopulationState,
)

TEST_DSN = "mongodb://localhost:27017/fixture_test"


def make_module(driver_factory, dump=None, **overrides):
    settings = {"dsn": TEST_DSN}
    if dump is not None:
        settings["dump"] = dump.name
        settings["project_dir"] = str(dump.parent)
    settings.update(overrides)
    return MongoDbModule(settings, driver_factory=driver_factory)


@pytest.fixture
def module(driver_factory, json_dump):
    module = make_module(driver_factory, json_dump)
    module._initialize()
    yield module
    module.close()


# ============================================================
# Lifecycle
# ============================================================

def test_missing_dump_fails_before_connecting(driver_factory, tmp_path):
    module = MongoDbModule(
        {"dsn": TEST_DSN, "dump": "missing.json", "project_dir": str(tmp_path)},
        driver_factory=driver_factory,
    )

    with pytest.raises(ConfigurationError, match="File with dump doesn't exist"):
        module._initialize()
    assert driver_factory.created == []


def test_missing_dump_ignored_when_populate_and_cleanup_disabled(driver_factory, tmp_path):
    module = MongoDbModule(
        {
            "dsn": TEST_DSN,
            "dump": "missing.json",
            "project_dir": str(tmp_path),
            "populate": False,
            "cleanup": False,
        },
        driver_factory=driver_factory,
    )
    module._initialize()
    assert module.dump_file is None
    assert len(driver_factory.created) == 1


def test_initialize_populates_from_dump(module):
    assert module.state == PopulationState.POPULATED_THIS_SUITE
    assert module.grab_collection_count("users") == 2
    assert module.grab_collection_count("posts") == 1


def test_initialize_drops_existing_data(driver_factory, json_dump, mongo_client):
    mongo_client["fixture_test"]["stale"].insert_one({"leftover": True})

    module = make_module(driver_factory, json_dump)
    module._initialize()

    assert "stale" not in mongo_client["fixture_test"].list_collection_names()


def test_first_test_does_not_repopulate_twice(module):
    module.have_in_collection("users", {"name": "herbie"})

    module._before("test_first")
    assert module.grab_collection_count("users") == 3

    module._after("test_first")
    assert module.state == PopulationState.AWAITING_NEXT_TEST

    module._before("test_second")
    assert module.grab_collection_count("users") == 2


def test_before_is_idempotent_between_tests(module):
    for name in ("a", "b", "c"):
        module._after(name)
        module._before(name)
        module.have_in_collection("posts", {"title": name})
        module._after(name)
        module._before(name)
        module.see_num_elements_in_collection("users", 2)
        module.see_num_elements_in_collection("posts", 1)


def test_cleanup_disabled_keeps_data_between_tests(driver_factory, json_dump):
    module = make_module(driver_factory, json_dump, cleanup=False)
    module._initialize()
    module.have_in_collection("users", {"name": "herbie"})

    module._after("test_first")
    module._before("test_second")

    assert module.grab_collection_count("users") == 3


def test_populate_disabled_defers_loading_to_first_test(driver_factory, json_dump):
    module = make_module(driver_factory, json_dump, populate=False)
    module._initialize()

    assert module.state == PopulationState.NOT_YET_POPULATED
    assert module.grab_collection_count("users") == 0

    module._before("test_first")
    assert module.grab_collection_count("users") == 2


def test_comment_only_dump_is_not_loaded(driver_factory, tmp_path):
    dump = tmp_path / "empty.json"
    dump.write_text("/* exported by nobody */\n\n   /*\n more */\n", encoding="utf-8")

    module = make_module(driver_factory, dump)
    module._initialize()

    assert module.dump_file.is_empty
    assert module.grab_collection_count("users") == 0


def test_connection_failure_is_wrapped(json_dump):
    def failing_factory(*args, **kwargs):
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    module = MongoDbModule(
        {"dsn": TEST_DSN, "dump": json_dump.name, "project_dir": str(json_dump.parent)},
        driver_factory=failing_factory,
    )

    with pytest.raises(DatabaseConnectionError) as exc_info:
        module._initialize()
    assert "connection refused while creating Mongo connection" in str(exc_info.value)


def test_cleanup_without_connection_is_configuration_error(module):
    module.close()
    module._after("test_first")

    with pytest.raises(ConfigurationError, match="No connection to database"):
        module._before("test_second")


def test_broken_dump_raises_operation_error(driver_factory, tmp_path):
    dump = tmp_path / "broken.json"
    dump.write_text('{"users": [{"name": ', encoding="utf-8")

    module = make_module(driver_factory, dump)
    with pytest.raises(OperationError):
        module._initialize()


def test_driver_cleanup_failure_raises_operation_error(module, monkeypatch):
    def boom():
        raise PyMongoError("not authorized on fixture_test")

    monkeypatch.setattr(module.driver, "cleanup", boom)
    module._after("test_first")

    with pytest.raises(OperationError, match="not authorized"):
        module._before("test_second")


# ============================================================
# Helpers
# ============================================================

def test_have_in_collection_round_trip(module):
    inserted_id = module.have_in_collection("users", {"name": "wayne", "email": "wayne@shorter.com"})

    assert isinstance(inserted_id, str)
    document = module.grab_from_collection("users", {"_id": ObjectId(inserted_id)})
    assert document["name"] == "wayne"
    assert document["email"] == "wayne@shorter.com"


def test_see_and_dont_see_are_exclusive(module):
    module.see_in_collection("users", {"name": "miles"})
    with pytest.raises(AssertionError):
        module.dont_see_in_collection("users", {"name": "miles"})

    module.dont_see_in_collection("users", {"name": "nobody"})
    with pytest.raises(AssertionError):
        module.see_in_collection("users", {"name": "nobody"})


def test_grab_from_collection_returns_none_without_match(module):
    assert module.grab_from_collection("users", {"name": "nobody"}) is None
    assert module.grab_from_collection("posts")["title"] == "Kind of Blue"


@pytest.mark.parametrize("expected, passes", [(1, False), (2, True), (3, False)])
def test_see_num_elements_requires_exact_count(module, expected, passes):
    if passes:
        module.see_num_elements_in_collection("users", expected)
    else:
        with pytest.raises(AssertionError):
            module.see_num_elements_in_collection("users", expected)


def test_see_num_elements_with_criteria(module):
    module.see_num_elements_in_collection("users", 1, {"name": "miles"})


def test_see_element_is_array(module):
    module.see_element_is_array("users", {"name": "miles"}, "skills")

    with pytest.raises(AssertionError, match="not a Mongo Array"):
        module.see_element_is_array("users", {"name": "john"}, "profile")


def test_see_element_is_object(module):
    module.see_element_is_object("users", {"name": "john"}, "profile")

    with pytest.raises(AssertionError, match="not a Mongo Object"):
        module.see_element_is_object("users", {"name": "miles"}, "skills")


def test_element_checks_support_nested_paths(module):
    module.have_in_collection("users", {"name": "herbie", "data": {"skills": ["piano"]}})

    module.see_element_is_object("users", {"name": "herbie"}, "data")
    module.see_element_is_array("users", {"name": "herbie"}, "data.skills")


def test_element_checks_reject_ambiguous_criteria(module):
    module.have_in_collection("users", {"name": "herbie", "skills": ["piano"]})

    with pytest.raises(ExpectationFailedError, match="single element criteria"):
        module.see_element_is_array("users", {}, "skills")


def test_use_database_switches_target(module):
    module.use_database("other_db")
    module.dont_see_in_collection("users")
    module.have_in_collection("users", {"name": "ron"})
    module.see_num_elements_in_collection("users", 1)

    module.use_database("fixture_test")
    module.see_num_elements_in_collection("users", 2)


def test_driver_errors_in_helpers_are_wrapped(module, monkeypatch):
    def boom(collection, criteria):
        raise PyMongoError("cursor killed")

    monkeypatch.setattr(module.driver, "count", boom)

    with pytest.raises(OperationError, match="count documents in collection 'users'"):
        module.grab_collection_count("users")


def test_helpers_require_initialization(driver_factory):
    module = MongoDbModule({"dsn": TEST_DSN}, driver_factory=driver_factory)

    with pytest.raises(ConfigurationError, match="not initialized"):
        module.grab_collection_count("users")


@pytest.mark.parametrize("expected", [2.0, "2"])
def test_see_num_elements_rejects_non_int_expected(module, expected):
    with pytest.raises(AssertionError):
        module.see_num_elements_in_collection("users", expected)


def test_see_num_elements_rejects_bool_expected(module):
    module.see_num_elements_in_collection("users", 1, {"name": "miles"})

    with pytest.raises(AssertionError):
        module.see_num_elements_in_collection("users", True, {"name": "miles"})


def test_unencodable_document_is_wrapped(module, monkeypatch):
    def reject(collection, document):
        raise InvalidDocument("cannot encode object: {1, 2}, of type: <class 'set'>")

    monkeypatch.setattr(module.driver, "insert", reject)

    with pytest.raises(OperationError, match="insert document in collection 'users'"):
        module.have_in_collection("users", {"tags": {1, 2}})


def test_latin1_dump_does_not_break_initialization(driver_factory, tmp_path):
    dump = tmp_path / "dump.js"
    dump.write_bytes(b'/* export */\ndb.users.insertOne({"name": "Ren\xe9"});\n')

    module = make_module(driver_factory, dump, populate=False)
    module._initialize()

    assert module.dump_file.is_empty is False


def test_assertion_helpers_fail_under_optimized_python(pytester, monkeypatch, project_root):
    monkeypatch.setenv("PYTHONPATH", str(project_root))
    script = pytester.makepyfile(
        check_helpers="""
        import mongomock

        from fixture_tools.mongo_fixture import MongoDbDriver, MongoDbModule

        client = mongomock.MongoClient()


        def factory(dsn, user=None, password=None, shell="mongosh"):
            return MongoDbDriver.create(
                dsn, user, password, shell=shell, client_factory=lambda *args, **kwargs: client
            )


        module = MongoDbModule({"dsn": "mongodb://localhost:27017/optimized"}, driver_factory=factory)
        module._initialize()
        module.have_in_collection("profiles", {"name": "miles", "skills": "trumpet"})

        checks = {
            "see_in_collection": lambda: module.see_in_collection("users", {"name": "nobody"}),
            "dont_see_in_collection": lambda: module.dont_see_in_collection("profiles"),
            "see_num_elements_in_collection": lambda: module.see_num_elements_in_collection("users", 5),
            "see_element_is_array": lambda: module.see_element_is_array("profiles", {}, "skills"),
            "see_element_is_object": lambda: module.see_element_is_object("profiles", {}, "skills"),
        }

        print(f"debug={__debug__}")
        for name, check in checks.items():
            try:
                check()
            except AssertionError:
                print(f"{name}: failed")
            else:
                print(f"{name}: passed")
        """
    )

    result = pytester.run(sys.executable, "-O", str(script))

    assert result.ret == 0
    result.stdout.fnmatch_lines(
        [
            "debug=False",
            "see_in_collection: failed",
            "dont_see_in_collection: failed",
            "see_num_elements_in_collection: failed",
            "see_element_is_array: failed",
            "see_element_is_object: failed",
        ]
    )
