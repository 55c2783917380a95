"""
================================================================================
Root Pytest Configuration
================================================================================

Registers project-wide markers and auto-tags tests by suite directory.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    config.addinivalue_line(
        "markers", "unit: Fast tests with no external services"
    )
    config.addinivalue_line(
        "markers", "mongodb: Tests that use the MongoDB fixture module"
    )
    config.addinivalue_line(
        "markers", "scaffold: Tests for code generation"
    )


def pytest_collection_modifyitems(config, items):
    """
    Auto-add the 'unit' marker to tests in the unit directory.
    """
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Fixture Tools Test Suite",
        "=" * 60,
        "",
    ]
