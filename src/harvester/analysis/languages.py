"""Language, location and shelf resolution for a parsed book.

Each value is resolved through an ordered fallback chain.  Nothing here
raises: an unresolved value degrades to its default.
"""

from __future__ import annotations

from enum import Enum
import logging

from harvester.analysis.document import Document, Metadata, Node, element
from harvester.analysis.models import DEFAULT_LANGUAGE2, LanguageSet, LocationInfo

LOGGER = logging.getLogger(__name__)

DATA_DIV_ID = "bloomDataDiv"
SIGN_LANGUAGE_FEATURE_PREFIX = "signLanguage:"
BOOKSHELF_PREFIX = "bookshelf:"
DEFAULT_BRANDING = "Default"


class LanguageSlot(Enum):
    """Content language slots and the markup that identifies each one."""

    LANGUAGE1 = ("contentLanguage1", "bloom-content1")
    LANGUAGE2 = ("contentLanguage2", "bloom-contentNational1")
    LANGUAGE3 = ("contentLanguage3", "bloom-contentNational2")
    SIGN_LANGUAGE = ("signLanguage", None)

    def __init__(self, data_book_key: str, marker_class: str | None) -> None:
        self.data_book_key = data_book_key
        self.marker_class = marker_class


def _data_div_value(document: Document, key: str) -> str | None:
    data_div = document.select_first(element(attrs={"id": DATA_DIV_ID}))
    if data_div is None:
        return None
    for child in data_div.elements:
        if child.get("data-book") == key:
            return child.text.strip()
    return None


def _has_visible_paragraph(div: Node) -> bool:
    return any(child.tag == "p" and child.own_text.strip() for child in div.elements)


def _language_from_markup(document: Document, marker_class: str) -> str | None:
    title = document.select_first(
        element("div", classes=(marker_class,), attrs={"data-book": "bookTitle", "lang": None})
    )
    if title is not None and title.get("lang"):
        return title.get("lang")

    # A visible block of text in the slot's language also identifies it.
    for div in document.select_all(
        element("div", classes=("bloom-visibility-code-on", marker_class), attrs={"lang": None})
    ):
        if _has_visible_paragraph(div):
            return div.get("lang")
    return None


def _sign_language_from_features(metadata: Metadata) -> str:
    for feature in metadata.string_list("features"):
        if feature.startswith(SIGN_LANGUAGE_FEATURE_PREFIX):
            return feature[len(SIGN_LANGUAGE_FEATURE_PREFIX) :]
    return ""


def resolve_language_code(document: Document, slot: LanguageSlot) -> str | None:
    """Return the code for *slot* from the data div or page markup, or None."""

    code = _data_div_value(document, slot.data_book_key)
    if code is not None:
        return code
    if slot.marker_class is None:
        return None
    return _language_from_markup(document, slot.marker_class)


def resolve_languages(document: Document, metadata: Metadata) -> LanguageSet:
    """Resolve all four language slots, applying per-slot defaults."""

    sign_language = resolve_language_code(document, LanguageSlot.SIGN_LANGUAGE) or ""
    if not sign_language:
        # Books from older authoring tools only record it as a feature.
        sign_language = _sign_language_from_features(metadata)

    # An empty language2 entry is kept; only a missing one takes the default.
    language2 = resolve_language_code(document, LanguageSlot.LANGUAGE2)
    return LanguageSet(
        language1=resolve_language_code(document, LanguageSlot.LANGUAGE1) or "",
        language2=language2 if language2 is not None else DEFAULT_LANGUAGE2,
        language3=resolve_language_code(document, LanguageSlot.LANGUAGE3) or "",
        sign_language=sign_language,
    )


def parse_location(raw: str) -> LocationInfo | None:
    """Split ``district, province, country`` from the right.

    Only one to three comma separated parts are understood; anything else
    yields None.
    """

    parts = [part.strip() for part in raw.split(",")]
    if len(parts) == 3:
        return LocationInfo(country=parts[2], province=parts[1], district=parts[0])
    if len(parts) == 2:
        return LocationInfo(country=parts[1], province=parts[0])
    if len(parts) == 1:
        return LocationInfo(country=parts[0])
    return None


def resolve_location(document: Document) -> LocationInfo:
    """Read the language location recorded on an xmatter page."""

    matches: list[Node] = []
    seen: set[int] = set()
    for page in document.select_all(element(attrs={"data-xmatter-page": None})):
        for node in page.select_all(element(attrs={"data-library": "languageLocation"})):
            if id(node) not in seen:
                seen.add(id(node))
                matches.append(node)

    if len(matches) != 1:
        if matches:
            LOGGER.debug("Ignoring %d language location elements", len(matches))
        return LocationInfo()

    raw = matches[0].text.strip()
    if not raw:
        return LocationInfo()
    return parse_location(raw) or LocationInfo()


def resolve_bookshelf(document: Document, metadata: Metadata) -> str:
    """Return the ``bookshelf:<key>`` tag for the book, or an empty string."""

    shelf = document.body.get("data-bookshelfurlkey")
    if shelf:
        return BOOKSHELF_PREFIX + shelf
    for tag in metadata.string_list("tags"):
        if tag.startswith(BOOKSHELF_PREFIX):
            return tag
    return ""


def resolve_branding(metadata: Metadata, default: str = DEFAULT_BRANDING) -> str:
    if metadata.is_defined("brandingProjectName"):
        return str(metadata["brandingProjectName"])
    return default


def has_custom_license(metadata: Metadata) -> bool:
    return metadata.is_defined("license") and metadata["license"] == "custom"
