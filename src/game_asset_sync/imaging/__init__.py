"""Image preprocessing applied before any upload."""

from .alpha_bleed import alpha_bleed
from .normalize import decode_image, encode_png, gaussian_resize, has_alpha, normalize

__all__ = [
    "alpha_bleed",
    "decode_image",
    "encode_png",
    "gaussian_resize",
    "has_alpha",
    "normalize",
]
