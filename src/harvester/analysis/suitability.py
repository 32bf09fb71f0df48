"""Per-page content policies: reading level and artifact suitability."""

from __future__ import annotations

import logging

from harvester.analysis.document import Document, Node, element
from harvester.analysis.models import LogEntry, LogLevel, LogType
from harvester.analysis.publish_settings import EPUB_MODE_FIXED, FIXED_EPUB_CUTOFF, PublishSettings
from harvester.analysis.text_metrics import get_word_count

LOGGER = logging.getLogger(__name__)

NUMBERED_PAGE_CLASS = "numberedPage"
MARGIN_BOX_CLASS = "marginBox"
IMAGE_CONTAINER_CLASS = "bloom-imageContainer"
TRANSLATION_GROUP_CLASS = "bloom-translationGroup"
IMAGE_DESCRIPTION_CLASS = "bloom-imageDescription"
TEXT_OVER_PICTURE_CLASS = "bloom-textOverPicture"
EDITABLE_CLASS = "bloom-editable"
# Obsolete header marker still found in some older books.
HEADER_OFF_CLASS = "box-header-off"

# Upper word-count bounds for levels 1-3; anything larger is level 4.
READING_LEVEL_BOUNDS: tuple[int, ...] = (10, 25, 50)

MULTIPLE_IMAGES_MESSAGE = "Bad ePUB because some page(s) had multiple images"
MULTIPLE_TEXT_BOXES_MESSAGE = "Bad ePUB because some page(s) had multiple text boxes"
MULTIPLE_VIDEOS_MESSAGE = "Bad ePUB because some page(s) had multiple videos"
NO_CONTENT_PAGES_MESSAGE = "Bad ePUB because there were no content pages"


def numbered_pages(document: Document) -> list[Node]:
    """Content pages in document order."""

    return document.select_all(element("div", classes=(NUMBERED_PAGE_CLASS,)))


def _margin_boxes(page: Node) -> list[Node]:
    return [child for child in page.elements if child.tag == "div" and child.has_class(MARGIN_BOX_CLASS)]


def _unique_descendants(roots: list[Node], predicate) -> list[Node]:
    found: list[Node] = []
    seen: set[int] = set()
    for root in roots:
        for node in root.select_all(predicate):
            if id(node) not in seen:
                seen.add(id(node))
                found.append(node)
    return found


def _translation_group_predicate(include_image_descriptions: bool):
    without = (HEADER_OFF_CLASS,) if include_image_descriptions else (HEADER_OFF_CLASS, IMAGE_DESCRIPTION_CLASS)
    return element("div", classes=(TRANSLATION_GROUP_CLASS,), without_classes=without)


def translation_groups(page: Node, *, include_image_descriptions: bool) -> list[Node]:
    """Text boxes in the page's margin box."""

    return _unique_descendants(_margin_boxes(page), _translation_group_predicate(include_image_descriptions))


def image_containers(page: Node) -> list[Node]:
    return _unique_descendants(_margin_boxes(page), element("div", classes=(IMAGE_CONTAINER_CLASS,)))


def is_valid_language(code: str) -> bool:
    return bool(code) and code != "*"


def page_editables(
    document: Document,
    page: Node,
    language: str,
    *,
    include_image_descriptions: bool = True,
    include_text_over_picture: bool = True,
) -> list[Node]:
    """Editable text blocks on *page* written in *language*."""

    required = {"lang": language} if is_valid_language(language) else None
    editables = _unique_descendants(
        translation_groups(page, include_image_descriptions=include_image_descriptions),
        element("div", classes=(EDITABLE_CLASS,), attrs=required),
    )
    if include_text_over_picture:
        return editables
    return [node for node in editables if not _inside_class(document, node, TEXT_OVER_PICTURE_CLASS)]


def _inside_class(document: Document, node: Node, token: str) -> bool:
    current: Node | None = node
    while current is not None:
        if current.has_class(token):
            return True
        current = document.parent_of(current)
    return False


def max_words_per_page(document: Document, language: str) -> int:
    maximum = 0
    for page in numbered_pages(document):
        words = sum(
            get_word_count(editable.text)
            for editable in page_editables(document, page, language, include_image_descriptions=False)
        )
        maximum = max(maximum, words)
    return maximum


def reading_level_for_word_count(words_per_page: int) -> int:
    """Map peak words per page onto levels 1 (first words) to 4 (longer paragraphs)."""

    for level, bound in enumerate(READING_LEVEL_BOUNDS, start=1):
        if words_per_page <= bound:
            return level
    return len(READING_LEVEL_BOUNDS) + 1


def compute_reading_level(document: Document, language: str) -> int:
    return reading_level_for_word_count(max_words_per_page(document, language))


def is_reader_suitable(log_entries: list[LogEntry]) -> bool:
    """Generated reader books are always accepted."""

    return True


def _videos_from(document: Document, page: Node) -> int:
    boxes = _margin_boxes(page)
    boxes.extend(
        sibling
        for sibling in document.following_siblings(page)
        if sibling.tag == "div" and sibling.has_class(MARGIN_BOX_CLASS)
    )
    return len(_unique_descendants(boxes, element("video")))


def _reject(log_entries: list[LogEntry], message: str) -> bool:
    LOGGER.info(message)
    log_entries.append(LogEntry(LogLevel.INFO, LogType.ARTIFACT_SUITABILITY, message))
    return False


def is_epub_suitable(
    document: Document,
    publish_settings: PublishSettings | None,
    generator_version: tuple[int, ...],
    log_entries: list[LogEntry],
    *,
    cutoff: tuple[int, ...] = FIXED_EPUB_CUTOFF,
) -> bool:
    """Decide whether an ePub can be generated faithfully from this book.

    Fixed-layout ePubs reproduce any page.  Flowable ePubs only work when every
    content page holds at most one image, one text box and one video.
    """

    mode = publish_settings.epub_mode if publish_settings is not None else None
    if mode == EPUB_MODE_FIXED and generator_version >= cutoff:
        return True

    good_pages = 0
    for page in numbered_pages(document):
        if len(image_containers(page)) > 1:
            return _reject(log_entries, MULTIPLE_IMAGES_MESSAGE)
        if len(translation_groups(page, include_image_descriptions=False)) > 1:
            return _reject(log_entries, MULTIPLE_TEXT_BOXES_MESSAGE)
        if _videos_from(document, page) > 1:
            return _reject(log_entries, MULTIPLE_VIDEOS_MESSAGE)
        good_pages += 1

    if good_pages == 0:
        return _reject(log_entries, NO_CONTENT_PAGES_MESSAGE)
    return True
