"""
loadctl Controller Home

A controller home is a directory holding the editable configuration files
(``system.conf``, ``announcement.conf``, ``process_and_thread_policy.js``)
and lock files.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, List, Union

import structlog

from loadctl.config.loader import PropertiesSource

logger = structlog.get_logger(__name__)


class ControllerHome:
    """Directory wrapper with helpers for configuration files."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def exists(self) -> bool:
        return self._directory.is_dir()

    def init(self) -> None:
        """Create the home directory if it does not exist."""
        if not self.exists():
            self._directory.mkdir(parents=True, exist_ok=True)
            logger.info("Home directory created", path=str(self._directory))

    def sub_file(self, name: str) -> Path:
        return self._directory / name

    def source(self, name: str, required: bool = False) -> PropertiesSource:
        return PropertiesSource(self.sub_file(name), required=required)

    def read_properties(self, name: str) -> Dict[str, str]:
        """Read a properties file in this home; a missing file is empty."""
        return self.source(name).load()

    def copy_defaults(self, template_dir: Union[str, Path]) -> List[Path]:
        """
        Copy files from ``template_dir`` that are absent here.

        Existing files are never overwritten. Returns the files copied.
        """
        template = Path(template_dir)
        if not template.is_dir():
            logger.warning("Template directory missing", path=str(template))
            return []

        copied: List[Path] = []
        for source in sorted(template.rglob("*")):
            if not source.is_file():
                continue
            target = self._directory / source.relative_to(template)
            if target.exists():
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied.append(target)

        if copied:
            logger.info(
                "Default configuration files copied",
                home=str(self._directory),
                count=len(copied),
            )
        return copied

    def __repr__(self) -> str:
        return f"ControllerHome({str(self._directory)!r})"
