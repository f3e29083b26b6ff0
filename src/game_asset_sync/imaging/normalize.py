"""Upload-ready image normalization.

Pure and deterministic: decode, optionally resize, alpha-bleed, re-encode as
PNG. Resizing runs first because resampling changes which pixels end up fully
transparent.
"""

import logging
from io import BytesIO

import numpy as np
from PIL import Image, ImageFilter, UnidentifiedImageError

from ..core.errors import DecodeError, EncodeError, ImageProcessingError
from .alpha_bleed import alpha_bleed

_logger = logging.getLogger(__name__)

# Modes that carry an alpha band
ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}


def has_alpha(image: Image.Image) -> bool:
    """Whether an image carries transparency (alpha band or palette/key transparency)."""
    return image.mode in ALPHA_MODES or "transparency" in image.info


def _output_mode(image: Image.Image) -> str:
    if has_alpha(image):
        return "RGBA"
    if image.mode == "L":
        return "L"
    return "RGB"


def gaussian_resize(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Resample an RGBA image with a Gaussian pre-filter.

    When shrinking, the source is blurred with a radius proportional to the
    scale factor before bilinear sampling, which smooths like a Gaussian
    resampling kernel.

    Args:
        image: RGBA source image
        size: Target (width, height)

    Returns:
        Resized RGBA image
    """
    width, height = size
    scale = max(image.width / width, image.height / height)

    if scale > 1:
        image = image.filter(ImageFilter.GaussianBlur(radius=scale / 2))

    return image.resize((width, height), Image.Resampling.BILINEAR)


def decode_image(raw: bytes) -> Image.Image:
    """Decode raw image bytes.

    Raises:
        DecodeError: If the bytes are not a readable image
    """
    try:
        with Image.open(BytesIO(raw)) as image:
            image.load()
            return image.copy()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG.

    Raises:
        EncodeError: If Pillow can't write the image
    """
    buffer = BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeError(f"Failed to encode PNG: {e}") from e
    return buffer.getvalue()


def normalize(raw: bytes, resize_to: tuple[int, int] | None = None) -> bytes:
    """Turn raw image bytes into upload-ready PNG bytes.

    Args:
        raw: Encoded source image (any format Pillow reads)
        resize_to: Optional target (width, height)

    Returns:
        PNG bytes. Images with transparency come out as RGBA with transparent
        pixels bled; opaque images keep their L/RGB color type.

    Raises:
        DecodeError: If the source can't be decoded
        EncodeError: If the result can't be encoded
        ImageProcessingError: If resize_to is not a positive size
    """
    if resize_to is not None:
        width, height = resize_to
        if width <= 0 or height <= 0:
            raise ImageProcessingError(f"Invalid resize dimensions: {width}x{height}")

    image = decode_image(raw)
    target_mode = _output_mode(image)

    raster = image.convert("RGBA")

    if resize_to is not None:
        _logger.debug("Resizing image from %s to %s", raster.size, resize_to)
        raster = gaussian_resize(raster, resize_to)

    if target_mode == "RGBA":
        pixels = np.asarray(raster, dtype=np.uint8)
        raster = Image.fromarray(alpha_bleed(pixels))
    else:
        raster = raster.convert(target_mode)

    return encode_png(raster)
