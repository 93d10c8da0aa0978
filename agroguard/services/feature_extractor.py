"""Visual feature extraction: leaf photo -> six-value feature vector.

The image is resampled to a small fixed grid before measurement, which caps
cost and removes scale sensitivity from the result.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from agroguard.config import get_settings

logger = logging.getLogger(__name__)

# Feature names in vector order
FEATURE_NAMES = [
    "greenness",
    "variance",
    "necrotic_density",
    "redness",
    "edge_density",
    "zonal_integrity",
]

GREEN_MARGIN = 1.1
RED_OVER_GREEN = 1.3
RED_OVER_BLUE = 1.2
NECROTIC_LUMINANCE = 70.0
EDGE_JUMP = 40
VARIANCE_SCALE = 200.0
EDGE_SCALE = 0.4


@dataclass(frozen=True)
class VisualFeatures:
    greenness: float
    variance: float
    necrotic_density: float
    redness: float
    edge_density: float
    zonal_integrity: float

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_NAMES}


# Baseline reading used whenever no pixels are available
DEFAULT_FEATURES = VisualFeatures(
    greenness=0.8,
    variance=0.1,
    necrotic_density=0.05,
    redness=0.02,
    edge_density=0.1,
    zonal_integrity=0.9,
)


def _decode_bytes(image) -> bytes:
    """Accept raw bytes, a base64 string, or a data: URL."""
    if isinstance(image, (bytes, bytearray)):
        return bytes(image)
    text = str(image).strip()
    if text.startswith("data:"):
        text = text.split(",", 1)[1] if "," in text else ""
    return base64.b64decode(text, validate=False)


def load_pixels(image, size: int | None = None) -> np.ndarray | None:
    """Decode an image and resample it to a (size, size, 3) uint8 RGB grid.

    Returns None when the payload cannot be decoded.
    """
    if image is None:
        return None
    if size is None:
        size = get_settings().feature_grid_size

    try:
        raw = _decode_bytes(image)
        with Image.open(io.BytesIO(raw)) as img:
            img = img.convert("RGB").resize((size, size), Image.Resampling.BILINEAR)
            return np.asarray(img, dtype=np.uint8)
    except (
        binascii.Error,
        ValueError,
        UnidentifiedImageError,
        OSError,
        Image.DecompressionBombError,
    ) as e:
        logger.warning("Image decode failed, using default features: %s", e)
        return None


def extract_visual_features(pixels: np.ndarray | None) -> VisualFeatures:
    """Measure a resampled (N, N, 3) RGB grid.

    Args:
        pixels: uint8 array in row-major order, or None for "no image".

    Returns:
        VisualFeatures; the healthy default when pixels is None.
    """
    if pixels is None:
        return DEFAULT_FEATURES

    arr = np.asarray(pixels)
    height, width = arr.shape[:2]
    pixel_count = height * width
    if pixel_count == 0:
        return DEFAULT_FEATURES

    rgb = arr[..., :3].astype(np.int64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    is_green = (g > r * GREEN_MARGIN) & (g > b * GREEN_MARGIN)

    # Central square spans the middle half of each axis (bounds exclusive)
    ys, xs = np.indices((height, width))
    is_center = (
        (xs > width * 0.25) & (xs < width * 0.75)
        & (ys > height * 0.25) & (ys < height * 0.75)
    )
    center_green = int(np.count_nonzero(is_green & is_center))
    periphery_green = int(np.count_nonzero(is_green & ~is_center))
    green = center_green + periphery_green

    red = int(np.count_nonzero((r > g * RED_OVER_GREEN) & (r > b * RED_OVER_BLUE)))

    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    dark = int(np.count_nonzero(luminance < NECROTIC_LUMINANCE))

    total_var = int(np.abs(r - g).sum() + np.abs(g - b).sum())

    # Edges: red channel on consecutive pixel pairs (k, k+1), k even
    red_flat = r.reshape(-1)
    k = np.arange(0, max(pixel_count - 2, 0), 2)
    edges = int(np.count_nonzero(np.abs(red_flat[k] - red_flat[k + 1]) > EDGE_JUMP))

    features = VisualFeatures(
        greenness=min(1.0, green / pixel_count),
        variance=min(1.0, total_var / (pixel_count * VARIANCE_SCALE)),
        necrotic_density=min(1.0, dark / pixel_count),
        redness=min(1.0, red / pixel_count),
        edge_density=min(1.0, edges / (pixel_count * EDGE_SCALE)),
        zonal_integrity=center_green / periphery_green if periphery_green > 0 else 1.0,
    )
    logger.debug("Extracted features: %s", features.as_dict())
    return features


def features_from_image(image, size: int | None = None) -> VisualFeatures:
    """Decode + extract; an undecodable or missing image yields the default."""
    return extract_visual_features(load_pixels(image, size=size))
