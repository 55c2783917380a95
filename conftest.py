"""
Repository-level pytest configuration.

Provides:
  - Safe environment defaults so local runs never reach a real database
  - An in-memory MongoDB (mongomock) and driver factory for unit tests
  - pytester for plugin tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import mongomock
import pytest

from fixture_tools.common import reset_config
from fixture_tools.mongo_fixture import MongoDbDriver

pytest_plugins = ["pytester"]

TEST_DSN = "mongodb://localhost:27017/fixture_test"


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _demo_safe_env_defaults() -> Generator[None, None, None]:
    """
    Set safe environment defaults if not already provided by the user/CI.
    """
    defaults = {
        "MONGO_DSN": TEST_DSN,
        "LOG_LEVEL": "INFO",
    }

    for k, v in defaults.items():
        os.environ.setdefault(k, v)

    yield


@pytest.fixture(autouse=True)
def _fresh_config() -> Generator[None, None, None]:
    reset_config()
    yield
    reset_config()


@pytest.fixture
def mongo_client() -> Generator[mongomock.MongoClient, None, None]:
    """In-memory MongoDB via mongomock."""
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture
def driver_factory(mongo_client):
    """Driver factory that hands out drivers bound to the mongomock client."""
    created = []

    def factory(dsn, user=None, password=None, shell="mongosh"):
        driver = MongoDbDriver.create(
            dsn, user, password, shell=shell, client_factory=lambda *args, **kwargs: mongo_client
        )
        created.append(driver)
        return driver

    factory.created = created
    return factory


@pytest.fixture
def json_dump(tmp_path) -> Path:
    dump = tmp_path / "dump.json"
    dump.write_text(
        """
        {
            "users": [
                {"name": "miles", "email": "miles@davis.com", "skills": ["trumpet", "composing"]},
                {"name": "john", "email": "john@coltrane.com", "profile": {"instrument": "sax"}}
            ],
            "posts": [
                {"title": "Kind of Blue", "author": "miles"}
            ]
        }
        """,
        encoding="utf-8",
    )
    return dump
