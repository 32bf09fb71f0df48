"""Publish settings defaulting for books made by older authoring tools.

Current authoring tools default the ePub mode to ``fixed``; books made
before ``FIXED_EPUB_CUTOFF`` always produced flowable ePubs.  Resolution is a
pure function over an immutable settings value, and ``ensure_publish_settings``
persists the result only when defaulting changed something.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import threading
from types import MappingProxyType
from typing import Any, Mapping

LOGGER = logging.getLogger(__name__)

PUBLISH_SETTINGS_FILENAME = "publish-settings.json"
FIXED_EPUB_CUTOFF: tuple[int, ...] = (5, 4)
EPUB_MODE_FIXED = "fixed"
EPUB_MODE_FLOWABLE = "flowable"
FIXED_MODE_TOO_EARLY_MESSAGE = "Publish settings ask for a fixed ePUB, which the book's authoring version predates"

_FOLDER_LOCKS: dict[Path, threading.Lock] = {}
_FOLDER_LOCKS_GUARD = threading.Lock()


@dataclass(frozen=True, slots=True)
class PublishSettings:
    """Immutable copy of a ``publish-settings.json`` object."""

    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(copy.deepcopy(dict(self.data))))

    @property
    def epub_mode(self) -> str | None:
        epub = self.data.get("epub")
        if not isinstance(epub, Mapping):
            return None
        mode = epub.get("mode")
        return mode if isinstance(mode, str) else None

    def to_json(self) -> str:
        return json.dumps(dict(self.data), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class SettingsResolution:
    """Outcome of defaulting: the settings to use and whether they changed."""

    settings: PublishSettings | None
    changed: bool = False
    inconsistent: bool = False


def parse_publish_settings(raw_text: str) -> PublishSettings | None:
    """Parse settings text; anything unusable is treated as absent."""

    try:
        data = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as exc:
        LOGGER.debug("Ignoring unparseable publish settings: %s", exc)
        return None
    if not isinstance(data, dict):
        return None
    if "epub" in data and not isinstance(data["epub"], dict):
        return None
    return PublishSettings(data=data)


def read_publish_settings(book_folder: str | Path) -> PublishSettings | None:
    """Load ``publish-settings.json`` from *book_folder* if present and readable."""

    path = Path(book_folder) / PUBLISH_SETTINGS_FILENAME
    try:
        raw_text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.debug("No usable publish settings at %s: %s", path, exc)
        return None
    return parse_publish_settings(raw_text)


def resolve_publish_settings(
    settings: PublishSettings | None,
    generator_version: tuple[int, ...],
    *,
    cutoff: tuple[int, ...] = FIXED_EPUB_CUTOFF,
) -> SettingsResolution:
    """Default ``epub.mode`` to flowable for books made before *cutoff*."""

    if generator_version >= cutoff:
        return SettingsResolution(settings=settings)

    if settings is None:
        data: dict[str, Any] = {"epub": {"mode": EPUB_MODE_FLOWABLE}}
        return SettingsResolution(settings=PublishSettings(data=data), changed=True)

    data = copy.deepcopy(dict(settings.data))
    epub = data.get("epub")
    changed = False
    if epub is None:
        data["epub"] = {"mode": EPUB_MODE_FLOWABLE}
        changed = True
    elif "mode" not in epub:
        epub["mode"] = EPUB_MODE_FLOWABLE
        changed = True

    inconsistent = data["epub"].get("mode") == EPUB_MODE_FIXED
    if inconsistent:
        LOGGER.warning(
            "ePub mode is 'fixed' for a book made by version %s, which predates fixed ePubs",
            ".".join(str(part) for part in generator_version),
        )
    resolved = PublishSettings(data=data) if changed else settings
    return SettingsResolution(settings=resolved, changed=changed, inconsistent=inconsistent)


def _folder_lock(book_folder: Path) -> threading.Lock:
    key = book_folder.resolve()
    with _FOLDER_LOCKS_GUARD:
        lock = _FOLDER_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _FOLDER_LOCKS[key] = lock
        return lock


def write_publish_settings(book_folder: str | Path, settings: PublishSettings) -> Path:
    path = Path(book_folder) / PUBLISH_SETTINGS_FILENAME
    path.write_text(settings.to_json(), encoding="utf-8")
    return path


def ensure_publish_settings(
    book_folder: str | Path,
    generator_version: tuple[int, ...],
    *,
    cutoff: tuple[int, ...] = FIXED_EPUB_CUTOFF,
) -> SettingsResolution:
    """Read, default and (only if changed) rewrite the folder's settings file.

    The read-modify-write runs under a per-folder lock, so analyses of the same
    folder within one process do not interleave.
    """

    folder = Path(book_folder)
    with _folder_lock(folder):
        resolution = resolve_publish_settings(
            read_publish_settings(folder),
            generator_version,
            cutoff=cutoff,
        )
        if resolution.changed and resolution.settings is not None:
            path = write_publish_settings(folder, resolution.settings)
            LOGGER.info("Wrote defaulted publish settings to %s", path)
    return resolution
