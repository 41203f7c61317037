"""File-backed catalog of rubric templates.

Rubrics live as ``*.json`` files in one directory. JSON Schema companions
(``*.schema.json``) sit alongside them and are skipped.

Example:
    >>> library = RubricLibrary("data/rtass-rubrics")
    >>> [s.name for s in library.list_rubrics()]
    ['AFD Radio Baseline', 'Mayday Procedures']
    >>> rubric = library.load("afd-radio-baseline.json")
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rtass.exceptions import RtassError, RubricValidationError, Violation

from .models import RubricTemplate
from .validation import load_rubric, loads_strict, validate_rubric

logger = logging.getLogger(__name__)

_SAFE_FILENAME_RE = re.compile(r"^[a-z0-9._-]+\.json$", re.IGNORECASE)
_SCHEMA_SUFFIX = ".schema.json"


def is_safe_rubric_filename(filename: str) -> bool:
    """Return True if ``filename`` names a rubric file directly inside the library."""
    if not _SAFE_FILENAME_RE.match(filename):
        return False
    if filename.endswith(_SCHEMA_SUFFIX):
        return False
    if ".." in filename or "/" in filename or "\\" in filename:
        return False
    return True


@dataclass(frozen=True)
class RubricSummary:
    """Listing entry for one rubric file."""

    id: str
    name: str
    description: str
    version: str
    source_file: str
    jurisdiction: str | None = None
    tags: tuple[str, ...] = ()
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "jurisdiction": self.jurisdiction,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "sourceFile": self.source_file,
        }

    @classmethod
    def from_rubric(cls, rubric: RubricTemplate, source_file: str) -> RubricSummary:
        """Summarize a loaded rubric."""
        return cls(
            id=rubric.id,
            name=rubric.name,
            description=rubric.description,
            version=rubric.version,
            source_file=source_file,
            jurisdiction=rubric.jurisdiction,
            tags=rubric.tags,
            created_at=rubric.created_at,
            updated_at=rubric.updated_at,
        )


class RubricLibrary:
    """Read-only access to the rubric files in one directory.

    Args:
        directory: Directory holding rubric JSON files.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _read_json(self, path: Path) -> Any:
        try:
            return loads_strict(path.read_text(encoding="utf-8"))
        except ValueError as e:
            # UnicodeDecodeError, or a NaN/Infinity constant
            if isinstance(e, json.JSONDecodeError):
                message = f"invalid JSON: {e.msg} (line {e.lineno})"
            else:
                message = f"invalid JSON: {e}"
            raise RubricValidationError(
                [Violation("<root>", message)],
                subject=f"rubric file '{path.name}'",
            ) from e

    def load(self, filename: str) -> RubricTemplate:
        """Load and validate one rubric file.

        Raises:
            RtassError: If the filename is unsafe or the file does not exist.
            RubricValidationError: If the file is not a valid rubric.
        """
        if not is_safe_rubric_filename(filename):
            raise RtassError(
                f"Invalid rubric file name '{filename}'",
                context={"type": "invalid_file", "file": filename},
            )
        path = self._directory / filename
        if not path.is_file():
            raise RtassError(
                f"Rubric file '{filename}' not found",
                context={"type": "not_found", "file": filename},
            )
        return load_rubric(self._read_json(path))

    def list_rubrics(self) -> list[RubricSummary]:
        """Summaries of every valid rubric in the directory, sorted by name.

        Files that fail validation are logged and skipped so one bad file
        does not hide the rest of the catalog.
        """
        if not self._directory.is_dir():
            logger.warning("Rubric directory '%s' does not exist", self._directory)
            return []

        summaries: list[RubricSummary] = []
        for path in sorted(self._directory.glob("*.json")):
            if not path.is_file() or path.name.endswith(_SCHEMA_SUFFIX):
                continue
            try:
                data = self._read_json(path)
                violations = validate_rubric(data)
                if violations:
                    raise RubricValidationError(violations, subject=f"rubric file '{path.name}'")
            except RubricValidationError as e:
                logger.warning("Skipping rubric file '%s': %s", path.name, e)
                continue
            summaries.append(RubricSummary.from_rubric(RubricTemplate.from_dict(data), path.name))

        summaries.sort(key=lambda s: s.name.casefold())
        return summaries
