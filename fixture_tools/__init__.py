"""
================================================================================
Fixture Tools
================================================================================

Database fixture and scaffolding utilities for pytest test suites.

Modules:
    - common: Shared configuration and logging utilities
    - mongo_fixture: MongoDB reset-from-dump lifecycle and assertion helpers
    - scaffold: Scenario stub generation
    - pytest_plugin: pytest fixtures driving the MongoDB lifecycle

Example:
    from fixture_tools.mongo_fixture import MongoDbModule
    from fixture_tools.scaffold import ScenarioScaffold

    # Reset the database and check seeded data
    module = MongoDbModule({"dsn": "mongodb://localhost:27017/app_test",
                            "dump": "tests/_data/dump.js"})
    module._initialize()
    module.see_num_elements_in_collection("users", 2)

    # Generate a scenario stub
    print(ScenarioScaffold({"class_name": "Tester"}).produce())

================================================================================
"""

__version__ = "1.0.0"

__all__ = [
    "common",
    "mongo_fixture",
    "scaffold",
    "pytest_plugin",
]
