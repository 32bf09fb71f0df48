"""Front/back-matter pack detection from the book folder listing."""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)

XMATTER_STYLESHEET_SUFFIX = "-XMatter.css"
DEFAULT_XMATTER_PACK = "Device"


def xmatter_name_from_stylesheet(filename: str) -> str | None:
    """Return the pack name encoded in ``<Name>-XMatter.css``, or None."""

    if not filename.endswith(XMATTER_STYLESHEET_SUFFIX):
        return None
    name = filename[: -len(XMATTER_STYLESHEET_SUFFIX)].strip()
    return name or None


def detect_xmatter_pack(book_folder: str | Path | None, default: str = DEFAULT_XMATTER_PACK) -> str:
    """Find the xmatter pack a book was made with, falling back to *default*."""

    if not book_folder:
        return default

    try:
        filenames = sorted(entry.name for entry in Path(book_folder).iterdir() if entry.is_file())
    except OSError as exc:
        LOGGER.debug("Cannot list book folder %s: %s", book_folder, exc)
        return default

    for filename in filenames:
        if filename.endswith(XMATTER_STYLESHEET_SUFFIX):
            return xmatter_name_from_stylesheet(filename) or default
    return default
