"""
================================================================================
pytest Plugin
================================================================================

Wires ``MongoDbModule`` into the pytest lifecycle.

Enable it from a conftest:

    pytest_plugins = ["fixture_tools.pytest_plugin"]

Fixtures:
    - mongo_module (session): initialized module, closed at session end
    - mongo (function): repopulates before the test, yields the module

Configuration comes from the ``mongodb`` section of the global config
(``config/tools_config.yaml`` or ``MONGO_*`` environment variables).

================================================================================
"""

from typing import Generator

import pytest
from loguru import logger

from fixture_tools.mongo_fixture import MongoDbConfig, MongoDbModule


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "mongodb: Tests that use the MongoDB fixture module"
    )


@pytest.fixture(scope="session")
def mongo_config() -> MongoDbConfig:
    """Module configuration. Override in a conftest to point at another database."""
    return MongoDbConfig.from_global_config()


@pytest.fixture(scope="session")
def mongo_module(mongo_config: MongoDbConfig) -> Generator[MongoDbModule, None, None]:
    module = MongoDbModule(mongo_config)
    try:
        module._initialize()
        yield module
    finally:
        module.close()
        logger.debug("MongoDb module closed")


@pytest.fixture
def mongo(request, mongo_module: MongoDbModule) -> Generator[MongoDbModule, None, None]:
    mongo_module._before(request.node)
    yield mongo_module
    mongo_module._after(request.node)
