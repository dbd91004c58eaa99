"""Perceptual image fingerprints used as result cache keys."""

import io
import logging

from PIL import Image, UnidentifiedImageError

THUMBNAIL_SIZE = (32, 32)
REENCODE_QUALITY = 10
PREFIX_BYTES = 4096
_HASH_MASK = (1 << 64) - 1

_logger = logging.getLogger(__name__)


def image_fingerprint(image_bytes: bytes) -> str:
    """Return a short, deterministic cache key for an image.

    The image is downscaled and re-encoded as a low-quality JPEG, then a
    rolling ``hash * 31 + byte`` is taken over a fixed-size prefix of that
    encoding. Small differences in the original compression mostly vanish in
    the thumbnail. This is a cache key, not a content identity.
    """
    encoded = _reencode(image_bytes)
    return f"{rolling_hash(encoded[:PREFIX_BYTES]):016x}"


def rolling_hash(data: bytes) -> int:
    """Order-sensitive 64-bit rolling hash."""
    value = 0
    for byte in data:
        value = (value * 31 + byte) & _HASH_MASK
    return value


def _reencode(image_bytes: bytes) -> bytes:
    """Re-encode an image as a fixed-size, low-quality JPEG thumbnail."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.draft("RGB", THUMBNAIL_SIZE)
            rgb_img = img.convert("RGB")
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        # Undecodable or oversized input still needs a deterministic key.
        _logger.debug("Fingerprinting raw bytes, image not decodable: %s", exc)
        return image_bytes
    thumbnail = rgb_img.resize(THUMBNAIL_SIZE, Image.Resampling.BILINEAR)
    buffer = io.BytesIO()
    thumbnail.save(buffer, format="JPEG", quality=REENCODE_QUALITY)
    return buffer.getvalue()
