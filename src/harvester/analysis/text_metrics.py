"""Unicode-aware word segmentation used for reading-level estimates."""

from __future__ import annotations

import re
import unicodedata

_LINEBREAK_RE = re.compile(r"<br></br>|<br>|<br />|<br/>|\r?\n")

# Format (Cf) characters that separate words. Zero width joiners are not among them.
_WORD_BREAK_FORMAT_CHARS = frozenset(
    "\u200b"  # zero width space
    "\u200e\u200f"  # left-to-right / right-to-left mark
    "\u202a\u202b\u202c\u202d\u202e"  # directional embedding and override
    "\u2066\u2067\u2068\u2069"  # directional isolates
)

_DOTTED_I_LOCALES = frozenset({"tr", "az"})


def lowercase(text: str, *, locale: str | None = None) -> str:
    """Lowercase *text* with an explicit locale.

    ``None`` selects the culture-invariant mapping.  Turkish and Azeri map the
    dotted and dotless capital I to their own lowercase forms.
    """

    language = (locale or "").split("-")[0].split("_")[0].lower()
    if language in _DOTTED_I_LOCALES:
        text = text.replace("I", "\u0131").replace("\u0130", "i")
    return text.lower()


def _is_punctuation(char: str, letters: frozenset[str]) -> bool:
    return char not in letters and unicodedata.category(char).startswith("P")


def _is_separator(char: str) -> bool:
    """Whitespace, any Z* separator or any C* control/format character."""

    return char.isspace() or unicodedata.category(char)[0] in ("Z", "C")


def _is_word_break(char: str) -> bool:
    category = unicodedata.category(char)
    return category.startswith("Z") or category == "Cc" or char in _WORD_BREAK_FORMAT_CHARS


def strip_boundary_punctuation(text: str, letters: str = "") -> str:
    """Replace punctuation runs at word boundaries with a single space.

    A run survives only when flanked by non-separator characters on both
    sides, so "don't" and "well-known" keep their inner marks.
    """

    letter_set = frozenset(letters)
    output: list[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if not _is_punctuation(char, letter_set):
            output.append(char)
            index += 1
            continue

        end = index
        while end < length and _is_punctuation(text[end], letter_set):
            end += 1
        at_start = index == 0 or _is_separator(text[index - 1])
        at_end = end == length or _is_separator(text[end])
        if at_start or at_end:
            output.append(" ")
        else:
            output.append(text[index:end])
        index = end
    return "".join(output)


def split_words(text: str) -> list[str]:
    """Split on runs of separators, control characters and directional marks."""

    words: list[str] = []
    current: list[str] = []
    for char in text:
        if _is_word_break(char):
            if current:
                words.append("".join(current))
                current = []
        else:
            current.append(char)
    if current:
        words.append("".join(current))
    return words


def get_words(text: str, *, letters: str = "", locale: str | None = None) -> list[str]:
    """Return the words of a piece of (possibly HTML-flavoured) text.

    *letters* lists characters Unicode calls punctuation that should count as
    letters instead, such as an apostrophe used as a glottal stop.
    """

    if not text or text.isspace():
        return []
    lowered = lowercase(text, locale=locale)
    spaced = _LINEBREAK_RE.sub(" ", lowered)
    cleaned = strip_boundary_punctuation(spaced, letters)
    return [word for word in split_words(cleaned.strip()) if word]


def get_word_count(text: str, *, letters: str = "", locale: str | None = None) -> int:
    """Count words in *text*; empty or whitespace-only input counts zero."""

    return len(get_words(text, letters=letters, locale=locale))
