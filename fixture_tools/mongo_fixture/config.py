"""
================================================================================
MongoDB Module Configuration
================================================================================

Validated view of the ``mongodb`` configuration section.

Keys:
    - dsn (required): MongoDB DSN with the database name after the host
    - user / password: credentials passed to the client and the dump shell
    - dump: path to the dump file, relative to ``project_dir``
    - populate (default True): load the dump before the session starts
    - cleanup (default True): reload the dump before each test
    - shell (default "mongosh"): binary used to execute ``.js`` dumps
    - project_dir (default cwd): root that ``dump`` is resolved against

================================================================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from fixture_tools.common import get_config, to_bool

from .errors import ConfigurationError


@dataclass(frozen=True)
class MongoDbConfig:
    dsn: str
    user: Optional[str] = None
    password: Optional[str] = None
    dump: Optional[str] = None
    populate: bool = True
    cleanup: bool = True
    shell: str = "mongosh"
    project_dir: Path = Path(".")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MongoDbConfig":
        """
        Builds a config from a plain mapping, checking required fields.

        Raises:
            ConfigurationError: if ``dsn`` is missing or empty.
        """
        data = dict(data or {})
        dsn = data.get("dsn")
        if not dsn:
            raise ConfigurationError(
                "Options: dsn are required. Please update the mongodb "
                "configuration and set all the required fields"
            )

        project_dir = data.get("project_dir") or os.getcwd()
        return cls(
            dsn=str(dsn),
            user=data.get("user") or None,
            password=data.get("password") or None,
            dump=data.get("dump") or None,
            populate=to_bool(data.get("populate"), default=True),
            cleanup=to_bool(data.get("cleanup"), default=True),
            shell=data.get("shell") or "mongosh",
            project_dir=Path(project_dir),
        )

    @classmethod
    def from_global_config(cls) -> "MongoDbConfig":
        """Reads the ``mongodb`` section of the global configuration."""
        return cls.from_mapping(get_config("mongodb", {}) or {})

    @property
    def needs_dump(self) -> bool:
        return bool(self.dump) and (self.populate or self.cleanup)

    def dump_path(self) -> Optional[Path]:
        if not self.dump:
            return None
        return (self.project_dir / self.dump).resolve()


__all__ = ["MongoDbConfig"]
