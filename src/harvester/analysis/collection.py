"""Collection descriptor synthesized from a book's resolved fields."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from pathlib import Path

from lxml import etree

from harvester.analysis.document import Metadata
from harvester.analysis.models import LanguageSet, LocationInfo

COLLECTION_FILENAME = "temp.bloomCollection"
LANGUAGE_DISPLAY_NAMES_KEY = "language-display-names"


@dataclass(frozen=True, slots=True)
class CollectionDescriptor:
    """Fixed-shape collection settings; every field is always emitted."""

    language1_iso639_code: str = ""
    language2_iso639_code: str = ""
    language3_iso639_code: str = ""
    sign_language_iso639_code: str = ""
    language1_name: str = ""
    language2_name: str = ""
    language3_name: str = ""
    sign_language_name: str = ""
    xmatter_pack: str = ""
    branding_project_name: str = ""
    default_book_tags: str = ""
    page_number_style: str = ""
    is_language1_rtl: str = "false"
    country: str = ""
    province: str = ""
    district: str = ""

    def items(self) -> list[tuple[str, str]]:
        """Element names and values in output order."""

        return list(zip(_ELEMENT_NAMES, astuple(self)))

    def to_xml(self) -> bytes:
        """UTF-8 encoded ``<Collection>`` document with an XML declaration."""

        root = etree.Element("Collection")
        for name, value in self.items():
            etree.SubElement(root, name).text = value
        return etree.tostring(root, xml_declaration=True, encoding="utf-8")


_ELEMENT_NAMES: tuple[str, ...] = (
    "Language1Iso639Code",
    "Language2Iso639Code",
    "Language3Iso639Code",
    "SignLanguageIso639Code",
    "Language1Name",
    "Language2Name",
    "Language3Name",
    "SignLanguageName",
    "XMatterPack",
    "BrandingProjectName",
    "DefaultBookTags",
    "PageNumberStyle",
    "IsLanguage1Rtl",
    "Country",
    "Province",
    "District",
)


def language_display_name(metadata: Metadata, code: str) -> str:
    """Display name the sidecar records for *code*, or an empty string."""

    if not code:
        return ""
    names = metadata.child(LANGUAGE_DISPLAY_NAMES_KEY)
    if names is None or not names.is_defined(code):
        return ""
    return str(names[code])


def build_collection_descriptor(
    languages: LanguageSet,
    location: LocationInfo,
    *,
    branding: str,
    bookshelf: str,
    xmatter_pack: str,
    page_number_style: str | None,
    is_rtl: bool,
    metadata: Metadata,
) -> CollectionDescriptor:
    """Combine resolved book fields into a ``CollectionDescriptor``."""

    return CollectionDescriptor(
        language1_iso639_code=languages.language1,
        language2_iso639_code=languages.language2,
        language3_iso639_code=languages.language3,
        sign_language_iso639_code=languages.sign_language,
        language1_name=language_display_name(metadata, languages.language1),
        language2_name=language_display_name(metadata, languages.language2),
        language3_name=language_display_name(metadata, languages.language3),
        sign_language_name=language_display_name(metadata, languages.sign_language),
        xmatter_pack=xmatter_pack,
        branding_project_name=branding or "",
        default_book_tags=bookshelf,
        page_number_style=page_number_style or "",
        is_language1_rtl="true" if is_rtl else "false",
        country=location.country,
        province=location.province,
        district=location.district,
    )


def write_collection_descriptor(descriptor: CollectionDescriptor, book_folder: str | Path) -> Path:
    """Write the descriptor next to *book_folder* and return the file path."""

    target = Path(book_folder).parent / COLLECTION_FILENAME
    target.write_bytes(descriptor.to_xml())
    return target
