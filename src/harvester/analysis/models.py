"""Shared records produced by book analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


DEFAULT_LANGUAGE2 = "en"


class LogLevel(str, Enum):
    """Severity attached to a harvest diagnostic."""

    INFO = "Info"
    WARN = "Warn"
    ERROR = "Error"


class LogType(str, Enum):
    """Category of a harvest diagnostic."""

    ARTIFACT_SUITABILITY = "ArtifactSuitability"
    PUBLISH_SETTINGS = "PublishSettings"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One diagnostic appended to a caller-owned harvest log."""

    level: LogLevel
    category: LogType
    message: str

    def __str__(self) -> str:
        return f"{self.level.value}: {self.category.value}: {self.message}"


@dataclass(frozen=True, slots=True)
class LanguageSet:
    """Resolved language codes for the book's content slots."""

    language1: str = ""
    language2: str = DEFAULT_LANGUAGE2
    language3: str = ""
    sign_language: str = ""


@dataclass(frozen=True, slots=True)
class LocationInfo:
    """Geographic origin parsed from the xmatter language-location field."""

    country: str = ""
    province: str = ""
    district: str = ""
