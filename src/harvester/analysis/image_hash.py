"""Representative image selection and perceptual hashing for duplicate detection.

The hash follows the usual pHash recipe: greyscale, 64x64 resample, 2-D
DCT-II, keep the 8x8 low-frequency block and threshold it against the median
of its non-DC coefficients.  The DCT runs in fixed-point integer arithmetic so
the same pixels produce the same 64 bits on every machine.
"""

from __future__ import annotations

from functools import lru_cache
import io
import logging
import math
from numbers import Integral
from pathlib import Path
import re
from typing import Any

import numpy as np
from PIL import Image, ImageOps

from harvester.analysis.document import Document, Node, element
from harvester.analysis.errors import ImageDecodeError

LOGGER = logging.getLogger(__name__)

EXIF_ORIENTATION_TAG = 0x0112
MIN_ORIENTATION = 1
MAX_ORIENTATION = 9

HASH_SAMPLE_SIZE = 64
HASH_BLOCK_SIZE = 8
_DCT_SCALE_BITS = 16
_UINT32_MASK = 0xFFFFFFFF

IMAGE_CONTAINER_CLASS = "bloom-imageContainer"
_BACKGROUND_IMAGE_RE = re.compile(r"background-image\s*:\s*url\((.*)\)", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Representative image selection
# ---------------------------------------------------------------------------


def background_image_url(node: Node) -> str | None:
    """URL from an inline ``background-image`` style, quotes removed."""

    match = _BACKGROUND_IMAGE_RE.search(node.get("style") or "")
    if match is None:
        return None
    return match.group(1).strip().strip("'\"")


def _image_source_in(pages: list[Node]) -> str | None:
    containers: list[Node] = []
    seen: set[int] = set()
    for page in pages:
        for container in page.select_all(element("div", classes=(IMAGE_CONTAINER_CLASS,))):
            if id(container) not in seen:
                seen.add(id(container))
                containers.append(container)

    for container in containers:
        for child in container.elements:
            if child.tag == "img":
                return child.get("src", "")

    if containers:
        return background_image_url(containers[0])
    return None


def get_best_phash_image_source(document: Document) -> str | None:
    """Pick the image whose hash identifies the book.

    Pages are assumed to be written in page-number order, so the first content
    page image wins; the front cover is the fallback.
    """

    content_pages = document.select_all(element("div", classes=("bloom-page", "numberedPage")))
    source = _image_source_in(content_pages)
    if source is not None:
        return source

    cover_pages = document.select_all(
        element("div", classes=("bloom-page",), attrs={"data-xmatter-page": "frontCover"})
    )
    return _image_source_in(cover_pages)


# ---------------------------------------------------------------------------
# Pixel sanitizing
# ---------------------------------------------------------------------------


def normalize_orientation(raw: Any) -> int | None:
    """Coerce an EXIF orientation of any integer width or signedness.

    Signed values wrap to unsigned 32-bit, then clamp into [1, 9].  Values of
    unknown type give None and are left alone.
    """

    if isinstance(raw, (tuple, list)):
        if not raw:
            return None
        raw = raw[0]
    if isinstance(raw, bytes):
        if len(raw) not in (1, 2, 4):
            return None
        raw = int.from_bytes(raw, "little")
    if isinstance(raw, bool) or not isinstance(raw, Integral):
        return None

    value = int(raw) & _UINT32_MASK
    return min(max(value, MIN_ORIENTATION), MAX_ORIENTATION)


def sanitize_orientation(image: Image.Image) -> int | None:
    """Clamp a corrupt EXIF orientation in place and return the value in effect."""

    exif = image.getexif()
    if EXIF_ORIENTATION_TAG not in exif:
        return None
    raw = exif[EXIF_ORIENTATION_TAG]
    orientation = normalize_orientation(raw)
    if orientation is not None and orientation != raw:
        exif[EXIF_ORIENTATION_TAG] = orientation
    return orientation


def remap_alpha_only(pixels: np.ndarray) -> np.ndarray:
    """Copy alpha into R, G and B when every pixel is black.

    Monochrome line art is sometimes stored only in the alpha channel. Fully
    opaque black and fully transparent images collapse to a uniform hash.
    """

    if pixels[..., :3].any():
        return pixels
    remapped = pixels.copy()
    remapped[..., :3] = pixels[..., 3:4]
    return remapped


def decode_image(source: bytes | str | Path) -> Image.Image:
    """Decode image bytes or a file path with Pillow."""

    label = "<bytes>" if isinstance(source, bytes) else str(source)
    try:
        with Image.open(io.BytesIO(source) if isinstance(source, bytes) else source) as opened:
            opened.load()
            image = opened.copy()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(label, f"Image could not be decoded: {exc}") from exc
    return image


def rgba_pixels(image: Image.Image) -> np.ndarray:
    return np.array(image.convert("RGBA"), dtype=np.uint8)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _dct_rows() -> np.ndarray:
    """First HASH_BLOCK_SIZE rows of the orthonormal DCT-II basis, fixed point."""

    n = HASH_SAMPLE_SIZE
    rows = []
    for k in range(HASH_BLOCK_SIZE):
        scale = math.sqrt(1.0 / n) if k == 0 else math.sqrt(2.0 / n)
        rows.append(
            [
                round(scale * math.cos(math.pi * (2 * i + 1) * k / (2 * n)) * (1 << _DCT_SCALE_BITS))
                for i in range(n)
            ]
        )
    matrix = np.array(rows, dtype=np.int64)
    matrix.setflags(write=False)
    return matrix


def perceptual_hash(pixels: np.ndarray) -> int:
    """64-bit perceptual hash of an RGBA pixel buffer (height x width x 4)."""

    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA pixel buffer, got shape {pixels.shape}")

    rgba = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    grey = rgba.convert("L").resize((HASH_SAMPLE_SIZE, HASH_SAMPLE_SIZE), Image.Resampling.BICUBIC)
    samples = np.asarray(grey, dtype=np.int64)

    dct = _dct_rows()
    coefficients = (dct @ samples @ dct.T).flatten()
    median = np.median(coefficients[1:])

    value = 0
    for index, coefficient in enumerate(coefficients):
        if coefficient > median:
            value |= 1 << index
    return value


def hamming_distance(first: int, second: int) -> int:
    """Number of differing bits between two hashes."""

    return bin(first ^ second).count("1")


def compute_image_hash(source: bytes | str | Path) -> int:
    """Decode, sanitize and hash the image at *source*."""

    image = decode_image(source)
    orientation = sanitize_orientation(image)
    # Hash the picture as displayed, not as stored.
    upright = ImageOps.exif_transpose(image)
    pixels = remap_alpha_only(rgba_pixels(upright))
    value = perceptual_hash(pixels)
    LOGGER.debug("Image hash %016x (orientation=%s)", value, orientation)
    return value
