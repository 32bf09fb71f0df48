"""Domain errors raised by book analysis."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class HarvesterError(Exception):
    """Base class for failures that stop a book analysis."""


@dataclass(slots=True)
class ParseError(HarvesterError):
    """Markup or sidecar text could not be turned into a queryable value."""

    source: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (source={self.source})"


@dataclass(slots=True)
class BookPackageError(HarvesterError):
    """A book folder is missing one of the files an analysis needs."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


@dataclass(slots=True)
class ImageDecodeError(HarvesterError):
    """Representative image bytes could not be decoded into pixels."""

    source: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (source={self.source})"
