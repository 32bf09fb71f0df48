"""Runtime configuration for book analysis."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

from harvester.analysis.languages import DEFAULT_BRANDING
from harvester.analysis.publish_settings import FIXED_EPUB_CUTOFF
from harvester.analysis.xmatter import DEFAULT_XMATTER_PACK


def _parse_version(*, name: str, raw_value: str) -> tuple[int, ...]:
    try:
        parts = tuple(int(part) for part in raw_value.split("."))
    except ValueError as exc:
        raise ValueError(f"{name} must look like MAJOR.MINOR, got {raw_value!r}") from exc
    if len(parts) < 2 or any(part < 0 for part in parts):
        raise ValueError(f"{name} must look like MAJOR.MINOR, got {raw_value!r}")
    return parts


@dataclass(frozen=True, slots=True)
class AnalysisSettings:
    """Defaults applied when a book package leaves a value unresolved."""

    default_branding: str = DEFAULT_BRANDING
    default_xmatter_pack: str = DEFAULT_XMATTER_PACK
    fixed_epub_cutoff: tuple[int, ...] = FIXED_EPUB_CUTOFF

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AnalysisSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        branding = source.get("HARVESTER_DEFAULT_BRANDING", DEFAULT_BRANDING).strip()
        xmatter = source.get("HARVESTER_DEFAULT_XMATTER", DEFAULT_XMATTER_PACK).strip()
        cutoff_raw = source.get(
            "HARVESTER_FIXED_EPUB_CUTOFF",
            ".".join(str(part) for part in FIXED_EPUB_CUTOFF),
        ).strip()

        # Artifact generation fails without a branding value.
        if not branding:
            raise ValueError("HARVESTER_DEFAULT_BRANDING cannot be empty")
        if not xmatter:
            raise ValueError("HARVESTER_DEFAULT_XMATTER cannot be empty")
        if not cutoff_raw:
            raise ValueError("HARVESTER_FIXED_EPUB_CUTOFF cannot be empty")

        return cls(
            default_branding=branding,
            default_xmatter_pack=xmatter,
            fixed_epub_cutoff=_parse_version(name="HARVESTER_FIXED_EPUB_CUTOFF", raw_value=cutoff_raw),
        )
