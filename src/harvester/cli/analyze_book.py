"""CLI for analyzing one downloaded book folder and printing a JSON report."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from urllib.parse import unquote

from dotenv import load_dotenv

from harvester.analysis import BookAnalyzer, HarvesterError, LogEntry
from harvester.config import AnalysisSettings

load_dotenv()

logger = logging.getLogger(__name__)


def resolve_image_path(book_folder: Path, source: str) -> Path:
    """Map an image ``src`` (URL-encoded, relative to the book) to a local file."""

    return book_folder / unquote(source.split("?", 1)[0])


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze a book folder for publishing decisions")
    parser.add_argument("book_folder", help="Folder holding the book HTML and meta.json")
    parser.add_argument(
        "--write-collection",
        action="store_true",
        help="Write temp.bloomCollection next to the book folder",
    )
    parser.add_argument(
        "--hash-image",
        action="store_true",
        help="Compute the perceptual hash of the representative image",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
    )

    folder = Path(args.book_folder)
    try:
        settings = AnalysisSettings.from_env()
        analyzer = BookAnalyzer.from_folder(folder, settings=settings)
    except (HarvesterError, ValueError) as error:
        logger.error("Analysis failed: %s", error)
        return 1

    log_entries: list[LogEntry] = []
    report: dict[str, object] = {
        "languages": {
            "language1": analyzer.language1_code,
            "language2": analyzer.language2_code,
            "language3": analyzer.language3_code,
            "signLanguage": analyzer.sign_language_code,
        },
        "location": {
            "country": analyzer.location.country,
            "province": analyzer.location.province,
            "district": analyzer.location.district,
        },
        "branding": analyzer.branding,
        "bookshelf": analyzer.bookshelf,
        "customLicense": analyzer.has_custom_license,
        "readingLevel": analyzer.get_book_computed_level(),
        "readerSuitable": analyzer.is_reader_suitable(log_entries),
        "epubSuitable": analyzer.is_epub_suitable(log_entries),
        "collection": dict(analyzer.collection_descriptor.items()),
    }

    if args.write_collection:
        report["collectionPath"] = str(analyzer.write_collection())

    image_source = analyzer.get_best_phash_image_source()
    report["imageSource"] = image_source
    if args.hash_image and image_source:
        try:
            report["imageHash"] = f"{analyzer.compute_image_hash(resolve_image_path(folder, image_source)):016x}"
        except HarvesterError as error:
            logger.error("Image hashing failed: %s", error)
            return 1

    report["log"] = [
        {"level": entry.level.value, "type": entry.category.value, "message": entry.message}
        for entry in log_entries
    ]
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
