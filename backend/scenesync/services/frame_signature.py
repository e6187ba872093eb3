"""Compact per-frame fingerprints and the distance used for cut detection."""

from dataclasses import dataclass

import numpy as np

from ..config import settings
from ..errors import InvalidInputError

HISTOGRAM_BITS = 4  # per channel
HISTOGRAM_BINS = 1 << (3 * HISTOGRAM_BITS)  # 16 x 16 x 16 = 4096

_LUMA_COEFFICIENTS = np.array([0.299, 0.587, 0.114])


@dataclass(frozen=True)
class FrameSignature:
    """Mean luminance plus a normalized 12-bit joint RGB histogram."""

    luminance: float
    histogram: np.ndarray


def compute_signature(pixels: np.ndarray) -> FrameSignature:
    """
    Compute the signature of an RGB frame.

    Args:
        pixels: ``H x W x 3`` uint8 array in RGB order (callers downscale
            frames first, see ``frame_source.downscale``)

    Raises:
        InvalidInputError: for empty or non-RGB buffers
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise InvalidInputError(f"Expected an H x W x 3 RGB buffer, got shape {pixels.shape}")

    pixel_count = pixels.shape[0] * pixels.shape[1]
    if pixel_count == 0:
        raise InvalidInputError("Cannot compute a signature of an empty frame")

    rgb = pixels.reshape(-1, 3).astype(np.uint16)

    luminance = float((rgb @ _LUMA_COEFFICIENTS).sum() / pixel_count)

    shift = 8 - HISTOGRAM_BITS
    bins = rgb >> shift
    index = (bins[:, 0] << (2 * HISTOGRAM_BITS)) | (bins[:, 1] << HISTOGRAM_BITS) | bins[:, 2]
    histogram = np.bincount(index, minlength=HISTOGRAM_BINS).astype(np.float64) / pixel_count
    histogram.setflags(write=False)

    return FrameSignature(luminance=luminance, histogram=histogram)


def frame_distance(
    a: FrameSignature,
    b: FrameSignature,
    *,
    luminance_weight: float | None = None,
    histogram_weight: float | None = None,
    histogram_scale: float | None = None,
) -> float:
    """
    Dissimilarity between two signatures.

    ``lw * |lum_a - lum_b| + hw * scale * sum(|hist_a - hist_b|)``. Weights
    default to the configured policy constants. Symmetric, and zero for
    identical signatures.
    """
    if a.histogram.shape != b.histogram.shape:
        raise InvalidInputError(
            f"Histogram size mismatch: {a.histogram.shape} vs {b.histogram.shape}"
        )

    lw = settings.luminance_weight if luminance_weight is None else luminance_weight
    hw = settings.histogram_weight if histogram_weight is None else histogram_weight
    scale = settings.histogram_scale if histogram_scale is None else histogram_scale

    luminance_diff = abs(a.luminance - b.luminance)
    histogram_diff = float(np.abs(a.histogram - b.histogram).sum())
    return lw * luminance_diff + hw * scale * histogram_diff
