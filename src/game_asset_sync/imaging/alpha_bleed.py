"""Alpha bleeding for RGBA rasters.

GPU texture filtering blends RGB values even where alpha is zero, so fully
transparent pixels left black show up as dark fringes around sprites once
the host re-samples or compresses them. Bleeding copies the color of the
nearest visible pixel into every fully transparent one. Alpha is never
touched.

Distance is Chebyshev (8-connected wavefront). When several visible pixels
are equally near, the neighbor visited first in raster order wins, which
makes the result deterministic and the operation idempotent.
"""

import numpy as np

# Raster order; earlier offsets win ties.
NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)


def _shift(array: np.ndarray, dy: int, dx: int) -> np.ndarray:
    """Return out where out[y, x] == array[y + dy, x + dx], zero outside."""
    out = np.zeros_like(array)
    height, width = array.shape[:2]

    src_y = slice(max(dy, 0), height + min(dy, 0))
    dst_y = slice(max(-dy, 0), height + min(-dy, 0))
    src_x = slice(max(dx, 0), width + min(dx, 0))
    dst_x = slice(max(-dx, 0), width + min(-dx, 0))

    out[dst_y, dst_x] = array[src_y, src_x]
    return out


def alpha_bleed(pixels: np.ndarray) -> np.ndarray:
    """Bleed visible colors into fully transparent pixels.

    Args:
        pixels: uint8 array of shape (height, width, 4), RGBA

    Returns:
        New array of the same shape; input is not modified

    Raises:
        ValueError: If the array is not an RGBA raster
    """
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA raster, got array of shape {pixels.shape}")

    result = np.array(pixels, copy=True)
    filled = result[..., 3] > 0

    # Nothing to bleed from, or nothing to bleed into
    if filled.all() or not filled.any():
        return result

    rgb = result[..., :3].copy()

    while True:
        pending = ~filled
        if not pending.any():
            break

        claimed = np.zeros_like(filled)
        next_rgb = rgb.copy()

        # Each pass only reads from pixels filled in earlier passes
        for dy, dx in NEIGHBOR_OFFSETS:
            take = pending & ~claimed & _shift(filled, dy, dx)
            if take.any():
                next_rgb[take] = _shift(rgb, dy, dx)[take]
                claimed |= take

        if not claimed.any():
            break

        rgb = next_rgb
        filled |= claimed

    result[..., :3] = rgb
    return result
