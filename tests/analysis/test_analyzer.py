from __future__ import annotations

import json
from pathlib import Path

import pytest

from harvester.analysis import BookAnalyzer, BookPackageError, LogEntry, LogLevel, LogType
from harvester.analysis.publish_settings import FIXED_MODE_TOO_EARLY_MESSAGE, PUBLISH_SETTINGS_FILENAME
from harvester.config import AnalysisSettings


def _book_html(*, generator: str = "Bloom Version 5.3.1 (apparent build date: 2-Feb-2023)") -> str:
    return f"""<html>
<head><meta name="Generator" content="{generator}"></head>
<body data-bookshelfurlkey="ew-stories">
  <div id="bloomDataDiv">
    <div data-book="contentLanguage1" lang="*">fr</div>
  </div>
  <div class="bloom-page" data-xmatter-page="frontCover">
    <div class="marginBox">
      <div class="bloom-imageContainer"><img src="cover.png"></div>
    </div>
  </div>
  <div class="bloom-page" data-xmatter-page="credits">
    <div data-library="languageLocation">Nyanza, Kenya</div>
  </div>
  <div class="bloom-page numberedPage">
    <div class="marginBox">
      <div class="bloom-imageContainer"><img src="lion.png"></div>
      <div class="bloom-translationGroup">
        <div class="bloom-editable" lang="fr">Le lion dort dans la savane chaude.</div>
        <div class="bloom-editable" lang="en">The lion sleeps.</div>
      </div>
    </div>
  </div>
</body>
</html>"""


_META = {
    "brandingProjectName": "Juarez",
    "page-number-style": "Decimal",
    "isRtl": False,
    "license": "custom",
    "features": ["signLanguage:fsl"],
    "language-display-names": {"fr": "French", "en": "English"},
}


def _write_book(folder: Path, *, meta: dict | None = None, html: str | None = None) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    (folder / f"{folder.name}.htm").write_text(html or _book_html(), encoding="utf-8")
    if meta is not None:
        (folder / "meta.json").write_text(json.dumps(meta), encoding="utf-8")
    return folder


def test_from_folder_resolves_every_field(tmp_path: Path) -> None:
    folder = _write_book(tmp_path / "Lion Book", meta=_META)
    (folder / "Kyrgyz-XMatter.css").write_text("", encoding="utf-8")

    analyzer = BookAnalyzer.from_folder(folder)

    assert analyzer.language1_code == "fr"
    assert analyzer.language2_code == "en"
    assert analyzer.sign_language_code == "fsl"
    assert analyzer.location.country == "Kenya"
    assert analyzer.location.province == "Nyanza"
    assert analyzer.branding == "Juarez"
    assert analyzer.bookshelf == "bookshelf:ew-stories"
    assert analyzer.has_custom_license is True
    assert analyzer.generator_version == (5, 3, 1)

    values = dict(analyzer.collection_descriptor.items())
    assert values["XMatterPack"] == "Kyrgyz"
    assert values["Language1Name"] == "French"
    assert values["PageNumberStyle"] == "Decimal"
    assert values["IsLanguage1Rtl"] == "false"


def test_analysis_signals(tmp_path: Path) -> None:
    analyzer = BookAnalyzer.from_folder(_write_book(tmp_path / "Lion Book", meta=_META))
    entries: list[LogEntry] = []

    assert analyzer.get_book_computed_level() == 1
    assert analyzer.is_reader_suitable(entries) is True
    assert analyzer.is_epub_suitable(entries) is True
    assert entries == []
    assert analyzer.get_best_phash_image_source() == "lion.png"


def test_old_books_get_flowable_publish_settings_written(tmp_path: Path) -> None:
    folder = _write_book(tmp_path / "Lion Book", meta=_META)

    analyzer = BookAnalyzer.from_folder(folder)

    assert analyzer.publish_settings_resolution.changed is True
    stored = json.loads((folder / PUBLISH_SETTINGS_FILENAME).read_text(encoding="utf-8"))
    assert stored == {"epub": {"mode": "flowable"}}
    assert BookAnalyzer.from_folder(folder).publish_settings_resolution.changed is False


def test_new_fixed_books_skip_page_checks(tmp_path: Path) -> None:
    html = _book_html(generator="Bloom Version 5.4.101 (apparent build date: 9-Sep-2023)").replace(
        '<img src="lion.png">', '<img src="lion.png"></div><div class="bloom-imageContainer"><img src="b.png">'
    )
    folder = _write_book(tmp_path / "Busy Book", meta=_META, html=html)
    (folder / PUBLISH_SETTINGS_FILENAME).write_text('{"epub": {"mode": "fixed"}}', encoding="utf-8")

    assert BookAnalyzer.from_folder(folder).is_epub_suitable([]) is True


def test_fixed_mode_on_old_book_is_reported_in_the_log(tmp_path: Path) -> None:
    folder = _write_book(tmp_path / "Lion Book", meta=_META)
    (folder / PUBLISH_SETTINGS_FILENAME).write_text('{"epub": {"mode": "fixed"}}', encoding="utf-8")
    analyzer = BookAnalyzer.from_folder(folder)
    entries: list[LogEntry] = []

    assert analyzer.is_epub_suitable(entries) is True
    assert entries == [LogEntry(LogLevel.WARN, LogType.PUBLISH_SETTINGS, FIXED_MODE_TOO_EARLY_MESSAGE)]
    assert analyzer.publish_settings_resolution.changed is False


def test_defaults_without_folder_or_metadata() -> None:
    analyzer = BookAnalyzer("<html><body><p>x</p></body></html>", "{}")

    values = dict(analyzer.collection_descriptor.items())
    assert values["XMatterPack"] == "Device"
    assert values["BrandingProjectName"] == "Default"
    assert analyzer.publish_settings is not None
    assert analyzer.publish_settings.epub_mode == "flowable"
    entries: list[LogEntry] = []
    assert analyzer.is_epub_suitable(entries) is False
    assert len(entries) == 1


def test_settings_override_defaults() -> None:
    settings = AnalysisSettings(default_branding="Local", default_xmatter_pack="Traditional")

    analyzer = BookAnalyzer("<html><body></body></html>", "{}", settings=settings)

    assert analyzer.branding == "Local"
    assert analyzer.collection_descriptor.xmatter_pack == "Traditional"


def test_write_collection_next_to_folder(tmp_path: Path) -> None:
    analyzer = BookAnalyzer.from_folder(_write_book(tmp_path / "books" / "Lion Book", meta=_META))

    path = analyzer.write_collection()

    assert path == tmp_path / "books" / "temp.bloomCollection"
    assert "<Language1Iso639Code>fr</Language1Iso639Code>" in path.read_text(encoding="utf-8")


def test_missing_meta_json_is_an_incomplete_upload(tmp_path: Path) -> None:
    folder = _write_book(tmp_path / "Lion Book")

    with pytest.raises(BookPackageError, match="meta.json"):
        BookAnalyzer.from_folder(folder)


def test_missing_html_is_an_incomplete_upload(tmp_path: Path) -> None:
    (tmp_path / "meta.json").write_text("{}", encoding="utf-8")

    with pytest.raises(BookPackageError, match="HTML"):
        BookAnalyzer.from_folder(tmp_path)
