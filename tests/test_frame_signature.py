import numpy as np
import pytest

from scenesync.errors import InvalidInputError
from scenesync.services import compute_signature, frame_distance
from scenesync.services.frame_signature import HISTOGRAM_BINS


def solid(rgb, height=8, width=8):
    frame = np.empty((height, width, 3), dtype=np.uint8)
    frame[:] = rgb
    return frame


def noise(seed, height=16, width=16):
    return np.random.default_rng(seed).integers(0, 256, (height, width, 3), dtype=np.uint8)


def test_histogram_is_normalized():
    signature = compute_signature(noise(1))

    assert signature.histogram.shape == (HISTOGRAM_BINS,)
    assert signature.histogram.sum() == pytest.approx(1.0)
    assert (signature.histogram >= 0).all()


def test_solid_frame_fills_one_bin():
    signature = compute_signature(solid((255, 0, 16)))

    index = (15 << 8) | (0 << 4) | 1
    assert signature.histogram[index] == pytest.approx(1.0)
    assert signature.luminance == pytest.approx(0.299 * 255 + 0.114 * 16)


def test_luminance_of_white_and_black():
    assert compute_signature(solid((255, 255, 255))).luminance == pytest.approx(255.0)
    assert compute_signature(solid((0, 0, 0))).luminance == pytest.approx(0.0)


def test_distance_to_self_is_zero():
    signature = compute_signature(noise(2))
    assert frame_distance(signature, signature) == pytest.approx(0.0)


def test_distance_is_symmetric():
    a = compute_signature(noise(3))
    b = compute_signature(noise(4))
    assert frame_distance(a, b) == pytest.approx(frame_distance(b, a))


def test_black_to_white_distance():
    black = compute_signature(solid((0, 0, 0)))
    white = compute_signature(solid((255, 255, 255)))

    # 0.7 * 255 + 0.3 * 100 * 2
    assert frame_distance(black, white) == pytest.approx(238.5)


def test_distance_weights_can_be_overridden():
    black = compute_signature(solid((0, 0, 0)))
    white = compute_signature(solid((255, 255, 255)))

    assert frame_distance(black, white, luminance_weight=1.0, histogram_weight=0.0) == pytest.approx(255.0)


def test_close_greys_share_a_bin():
    a = compute_signature(solid((100, 100, 100)))
    b = compute_signature(solid((110, 110, 110)))

    assert frame_distance(a, b) == pytest.approx(7.0)


@pytest.mark.parametrize("pixels", [
    np.zeros((0, 0, 3), dtype=np.uint8),
    np.zeros((4, 0, 3), dtype=np.uint8),
    np.zeros((4, 4), dtype=np.uint8),
    np.zeros((4, 4, 4), dtype=np.uint8),
])
def test_rejects_empty_or_non_rgb_buffers(pixels):
    with pytest.raises(InvalidInputError):
        compute_signature(pixels)


def test_histogram_is_read_only():
    signature = compute_signature(noise(5))
    with pytest.raises(ValueError):
        signature.histogram[0] = 1.0
