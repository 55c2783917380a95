"""
================================================================================
Scaffold Tools
================================================================================

Code generation helpers for new test skeletons.

Exports:
    - ScenarioScaffold: Renders a scenario stub for an actor class
    - Template: ``{{placeholder}}`` substitution used by the generators

================================================================================
"""

from .scenario import ScenarioScaffold
from .template import Template

__all__ = [
    "ScenarioScaffold",
    "Template",
]
