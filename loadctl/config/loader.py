"""
loadctl Properties Loader

Reads ``key=value`` configuration files into plain string mappings:

- ``#`` and ``!`` start comment lines
- the key ends at the first ``=``, ``:`` or whitespace; a bare key maps to ``""``
- a trailing backslash continues the value on the next line
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from loadctl.core.errors import SourceReadError

logger = structlog.get_logger(__name__)

_COMMENT_PREFIXES = ("#", "!")
_KEY_TERMINATOR = re.compile(r"[=:\s]")


def _logical_lines(text: str) -> Iterable[str]:
    pending: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not pending and (not line or line.startswith(_COMMENT_PREFIXES)):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending.append(line[:-1])
            continue
        pending.append(line)
        yield "".join(pending)
        pending = []
    if pending:
        yield "".join(pending)


def _split_entry(line: str) -> Tuple[str, str]:
    # The key ends at the first "=", ":" or whitespace. Whitespace may be
    # followed by one "=" or ":" that still belongs to the separator.
    match = _KEY_TERMINATOR.search(line)
    if match is None:
        return line, ""
    rest = line[match.start():].lstrip()
    if rest[:1] in ("=", ":"):
        rest = rest[1:]
    return line[:match.start()], rest.strip()


def parse_properties(text: str) -> Dict[str, str]:
    """Parse properties text; later duplicates win."""
    values: Dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split_entry(line)
        if key:
            values[key] = value
    return values


class PropertiesSource:
    """
    One layer of configuration backed by a file.

    A missing ``required`` source is a read error; a missing optional
    source contributes nothing.
    """

    def __init__(self, path: Path, required: bool = False, encoding: str = "utf-8"):
        self.path = Path(path)
        self.required = required
        self.encoding = encoding

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Dict[str, str]:
        """
        Read the source.

        Raises:
            SourceReadError: if the file is required and missing, or exists
                but cannot be read or decoded.
        """
        if not self.exists():
            if self.required:
                raise SourceReadError(self.path, FileNotFoundError(str(self.path)))
            return {}
        try:
            text = self.path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(self.path, e) from e
        values = parse_properties(text)
        logger.debug("Loaded properties", path=str(self.path), keys=len(values))
        return values

    def __repr__(self) -> str:
        return f"PropertiesSource({str(self.path)!r}, required={self.required})"


def load_layers(
    base: PropertiesSource,
    override: Optional[PropertiesSource] = None,
) -> Dict[str, str]:
    """Read ``base`` and lay ``override`` on top; override wins on collision."""
    merged = base.load()
    if override is not None and override.exists():
        merged.update(override.load())
    return merged
