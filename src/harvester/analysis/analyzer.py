"""Entry point that analyzes one book package for the harvester."""

from __future__ import annotations

import logging
from pathlib import Path

from harvester.analysis.collection import (
    CollectionDescriptor,
    build_collection_descriptor,
    write_collection_descriptor,
)
from harvester.analysis.document import Document, Metadata, load_document, load_metadata
from harvester.analysis.errors import BookPackageError
from harvester.analysis.image_hash import compute_image_hash, get_best_phash_image_source
from harvester.analysis.languages import (
    has_custom_license,
    resolve_bookshelf,
    resolve_branding,
    resolve_languages,
    resolve_location,
)
from harvester.analysis.models import LanguageSet, LocationInfo, LogEntry, LogLevel, LogType
from harvester.analysis.publish_settings import (
    FIXED_MODE_TOO_EARLY_MESSAGE,
    PublishSettings,
    SettingsResolution,
    ensure_publish_settings,
    resolve_publish_settings,
)
from harvester.analysis.suitability import compute_reading_level, is_epub_suitable, is_reader_suitable
from harvester.analysis.xmatter import detect_xmatter_pack
from harvester.config import AnalysisSettings

LOGGER = logging.getLogger(__name__)

META_FILENAME = "meta.json"
_BOOK_SUFFIXES = (".htm", ".html")


def find_book_html(book_folder: Path) -> Path | None:
    """The book's HTML file: ``<folder name>.htm`` if present, else the first one found."""

    try:
        candidates = sorted(
            entry for entry in book_folder.iterdir() if entry.is_file() and entry.suffix.lower() in _BOOK_SUFFIXES
        )
    except OSError:
        return None
    for candidate in candidates:
        if candidate.stem == book_folder.name:
            return candidate
    return candidates[0] if candidates else None


class BookAnalyzer:
    """Analyze a book and extract the information the harvester needs.

    Everything except image hashing is resolved once, at construction.  When
    a book folder is given, defaulted publish settings are written back to it.
    """

    def __init__(
        self,
        markup: str | bytes,
        sidecar: str | bytes,
        book_folder: str | Path | None = None,
        *,
        settings: AnalysisSettings | None = None,
    ) -> None:
        self._settings = settings or AnalysisSettings()
        self._book_folder = Path(book_folder) if book_folder else None
        self._document = load_document(markup)
        self._metadata = load_metadata(sidecar)

        self._languages = resolve_languages(self._document, self._metadata)
        self._location = resolve_location(self._document)
        self._branding = resolve_branding(self._metadata, self._settings.default_branding)
        self._bookshelf = resolve_bookshelf(self._document, self._metadata)
        self._has_custom_license = has_custom_license(self._metadata)

        page_number_style = self._metadata.get("page-number-style")
        self._descriptor = build_collection_descriptor(
            self._languages,
            self._location,
            branding=self._branding,
            bookshelf=self._bookshelf,
            xmatter_pack=detect_xmatter_pack(self._book_folder, self._settings.default_xmatter_pack),
            page_number_style=str(page_number_style) if page_number_style is not None else None,
            is_rtl=self._metadata.get("isRtl") is True,
            metadata=self._metadata,
        )

        self._generator_version = self._document.generator_version
        cutoff = self._settings.fixed_epub_cutoff
        if self._book_folder is not None:
            self._publish = ensure_publish_settings(self._book_folder, self._generator_version, cutoff=cutoff)
        else:
            self._publish = resolve_publish_settings(None, self._generator_version, cutoff=cutoff)

    @classmethod
    def from_folder(cls, book_folder: str | Path, *, settings: AnalysisSettings | None = None) -> "BookAnalyzer":
        folder = Path(book_folder)
        book_path = find_book_html(folder)
        if book_path is None:
            raise BookPackageError(folder, "Incomplete upload: missing book's HTML file")
        meta_path = folder / META_FILENAME
        if not meta_path.is_file():
            raise BookPackageError(folder, "Incomplete upload: missing book's meta.json file")
        LOGGER.info("Analyzing %s", book_path)
        return cls(
            book_path.read_text(encoding="utf-8"),
            meta_path.read_text(encoding="utf-8"),
            folder,
            settings=settings,
        )

    @property
    def document(self) -> Document:
        return self._document

    @property
    def metadata(self) -> Metadata:
        return self._metadata

    @property
    def languages(self) -> LanguageSet:
        return self._languages

    @property
    def language1_code(self) -> str:
        return self._languages.language1

    @property
    def language2_code(self) -> str:
        return self._languages.language2

    @property
    def language3_code(self) -> str:
        return self._languages.language3

    @property
    def sign_language_code(self) -> str:
        return self._languages.sign_language

    @property
    def location(self) -> LocationInfo:
        return self._location

    @property
    def branding(self) -> str:
        return self._branding

    @property
    def bookshelf(self) -> str:
        return self._bookshelf

    @property
    def has_custom_license(self) -> bool:
        return self._has_custom_license

    @property
    def collection_descriptor(self) -> CollectionDescriptor:
        return self._descriptor

    @property
    def generator_version(self) -> tuple[int, ...]:
        return self._generator_version

    @property
    def publish_settings(self) -> PublishSettings | None:
        return self._publish.settings

    @property
    def publish_settings_resolution(self) -> SettingsResolution:
        return self._publish

    def write_collection(self, book_folder: str | Path | None = None) -> Path:
        """Write the collection descriptor beside the book folder."""

        folder = book_folder or self._book_folder
        if folder is None:
            raise ValueError("A book folder is required to write the collection descriptor")
        return write_collection_descriptor(self._descriptor, folder)

    def is_reader_suitable(self, log_entries: list[LogEntry]) -> bool:
        return is_reader_suitable(log_entries)

    def is_epub_suitable(self, log_entries: list[LogEntry]) -> bool:
        if self._publish.inconsistent:
            log_entries.append(LogEntry(LogLevel.WARN, LogType.PUBLISH_SETTINGS, FIXED_MODE_TOO_EARLY_MESSAGE))
        return is_epub_suitable(
            self._document,
            self._publish.settings,
            self._generator_version,
            log_entries,
            cutoff=self._settings.fixed_epub_cutoff,
        )

    def get_book_computed_level(self) -> int:
        return compute_reading_level(self._document, self._languages.language1)

    def get_best_phash_image_source(self) -> str | None:
        return get_best_phash_image_source(self._document)

    def compute_image_hash(self, source: bytes | str | Path) -> int:
        return compute_image_hash(source)
