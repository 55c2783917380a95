"""
Test suites package.

Kept importable so unit tests can share helpers and IDEs can navigate them.
"""
