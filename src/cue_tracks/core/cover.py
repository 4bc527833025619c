"""Album cover loading and downscaling"""
import io

import requests
from PIL import Image, UnidentifiedImageError

from .errors import CoverArtError


MAX_COVER_SIZE = 640  # Max width/height in pixels
JPEG_QUALITY = 85
FETCH_TIMEOUT = 15


def is_url(value):
    return isinstance(value, str) and value.lower().startswith(("http://", "https://"))


def load_cover_bytes(cover, timeout=FETCH_TIMEOUT):
    """
    Resolve a cover source to raw image bytes.

    Args:
        cover: Image bytes, an http(s) URL or a local file path
        timeout: Network timeout in seconds for URL sources

    Returns:
        Raw image bytes

    Raises:
        CoverArtError: If the image cannot be downloaded or read
    """
    if isinstance(cover, (bytes, bytearray)):
        return bytes(cover)

    if is_url(cover):
        try:
            r = requests.get(cover, timeout=timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise CoverArtError(f"Unable to fetch cover image {cover}: {e}") from e
        return r.content

    try:
        with open(cover, "rb") as f:
            return f.read()
    except OSError as e:
        raise CoverArtError(f"Unable to read cover image {cover}: {e}") from e


def shrink_image(data, bound=MAX_COVER_SIZE, quality=JPEG_QUALITY):
    """
    Fit an image within ``bound`` x ``bound`` and re-encode it as JPEG.

    The aspect ratio is preserved and smaller images are not upscaled.

    Raises:
        CoverArtError: If the bytes are not a readable image
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise CoverArtError(f"Unsupported cover image: {e}") from e

    if img.mode != "RGB":
        img = img.convert("RGB")

    img.thumbnail((bound, bound), Image.Resampling.LANCZOS)

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality)
    return out.getvalue()
