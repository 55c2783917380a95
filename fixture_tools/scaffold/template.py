"""
Placeholder substitution for scaffold templates.

Placeholders are written as ``{{name}}``. Unknown placeholders are left
untouched.
"""

from typing import Any, Dict


class Template:

    def __init__(self, template: str, placeholder_start: str = "{{", placeholder_end: str = "}}"):
        self.template = template
        self.placeholder_start = placeholder_start
        self.placeholder_end = placeholder_end
        self.vars: Dict[str, str] = {}

    def place(self, name: str, value: Any) -> "Template":
        self.vars[name] = str(value)
        return self

    def produce(self) -> str:
        result = self.template
        for name, value in self.vars.items():
            result = result.replace(f"{self.placeholder_start}{name}{self.placeholder_end}", value)
        return result


__all__ = ["Template"]
