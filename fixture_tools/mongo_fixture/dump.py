"""
Dump file inspection.

A dump is considered empty when nothing but block comments and whitespace
remain. Comments are stripped for this check only; the file is handed to the
loader verbatim.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def strip_block_comments(content: str) -> str:
    return BLOCK_COMMENT_RE.sub("", content).strip()


@dataclass(frozen=True)
class DumpFile:
    path: Path
    is_empty: bool

    @classmethod
    def inspect(cls, path: Path) -> "DumpFile":
        # Only used for the emptiness check; the loader gets the raw file
        content = Path(path).read_bytes().decode("utf-8", errors="replace")
        is_empty = len(strip_block_comments(content)) == 0
        logger.debug(f"Inspected dump {path} (empty={is_empty})")
        return cls(path=Path(path), is_empty=is_empty)


__all__ = ["DumpFile", "strip_block_comments"]
