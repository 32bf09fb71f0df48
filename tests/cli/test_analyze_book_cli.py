from __future__ import annotations

import io
import json
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from harvester.cli import analyze_book
from harvester.cli.analyze_book import resolve_image_path


_HTML = """<html><head></head><body>
<div id="bloomDataDiv"><div data-book="contentLanguage1" lang="*">en</div></div>
<div class="bloom-page numberedPage"><div class="marginBox">
  <div class="bloom-imageContainer"><img src="my%20picture.png"></div>
  <div class="bloom-translationGroup"><div class="bloom-editable" lang="en">A cat sat.</div></div>
</div></div>
</body></html>"""


def _write_book(folder: Path) -> Path:
    folder.mkdir(parents=True)
    (folder / "Cat.htm").write_text(_HTML, encoding="utf-8")
    (folder / "meta.json").write_text('{"brandingProjectName": "Juarez"}', encoding="utf-8")
    pixels = np.zeros((16, 16, 4), dtype=np.uint8)
    pixels[..., 0] = np.arange(16, dtype=np.uint8) * 16
    pixels[..., 3] = 255
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    (folder / "my picture.png").write_bytes(buffer.getvalue())
    return folder


def test_resolve_image_path_decodes_url() -> None:
    assert resolve_image_path(Path("book"), "my%20picture.png?optional=true") == Path("book") / "my picture.png"


def test_cli_prints_json_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    folder = _write_book(tmp_path / "Cat")

    exit_code = analyze_book.main([str(folder), "--write-collection", "--hash-image"])

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["languages"]["language1"] == "en"
    assert report["branding"] == "Juarez"
    assert report["readingLevel"] == 1
    assert report["epubSuitable"] is True
    assert report["imageSource"] == "my%20picture.png"
    assert len(report["imageHash"]) == 16
    assert report["collection"]["BrandingProjectName"] == "Juarez"
    assert Path(report["collectionPath"]).exists()
    assert report["log"] == []


def test_cli_reports_incomplete_upload(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = analyze_book.main([str(tmp_path)])

    assert exit_code == 1
    assert capsys.readouterr().out == ""
