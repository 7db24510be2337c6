from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageOps, JpegImagePlugin, UnidentifiedImageError

from .errors import TransformError

MAX_DIMENSIONS: Tuple[int, int] = (800, 600)
JPEG_QUALITY = 85

_SUPPORTED_MODES = {"L", "RGB", "CMYK"}


# PUBLIC_INTERFACE
def normalize_jpeg(
    raw: bytes,
    *,
    max_size: Tuple[int, int] = MAX_DIMENSIONS,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """
    Re-encode an uploaded JPEG for storage.

    The image is rotated according to its EXIF orientation, shrunk to fit
    within ``max_size`` while keeping its aspect ratio (smaller images are
    never upscaled) and written back as a progressive JPEG. Metadata is not
    carried over. The same input always produces the same output.

    Raises:
        TransformError: input is not a decodable JPEG or uses an unsupported colour mode.
    """
    try:
        with Image.open(io.BytesIO(raw)) as img:
            # Multi-picture JPEGs (MPO) decode through the JPEG plugin too; the first frame is used.
            if not isinstance(img, JpegImagePlugin.JpegImageFile):
                raise TransformError("Photo must be a JPEG image")
            img.load()
            if img.mode not in _SUPPORTED_MODES:
                raise TransformError(f"Unsupported JPEG colour mode: {img.mode}")

            oriented = ImageOps.exif_transpose(img)
            if oriented.mode == "CMYK":
                oriented = oriented.convert("RGB")
            oriented.thumbnail(max_size, Image.Resampling.LANCZOS)

            out = io.BytesIO()
            oriented.save(out, format="JPEG", quality=quality, progressive=True, optimize=True)
            return out.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise TransformError("Photo could not be processed") from exc
