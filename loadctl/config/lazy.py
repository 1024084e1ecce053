"""
Lazily read file content with explicit invalidation.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Union

import structlog

logger = structlog.get_logger(__name__)


class LazyFileContent:
    """
    File text read on first access and cached until :meth:`invalidate`.

    ``loaded`` is tracked separately from the value, so an empty file is
    cached like any other content. A failed read leaves the cache unloaded
    and the next access retries.
    """

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding
        self._lock = threading.Lock()
        self._value = ""
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def get(self) -> str:
        with self._lock:
            if not self._loaded:
                try:
                    self._value = self.path.read_text(encoding=self.encoding)
                    self._loaded = True
                except (OSError, UnicodeDecodeError) as e:
                    logger.error("Error while loading file", path=str(self.path), error=str(e))
                    return ""
            return self._value

    def invalidate(self) -> None:
        with self._lock:
            self._loaded = False
