import math
import threading
import time

import numpy as np
import pytest

from blockart.errors import InvalidBlockSize, PaletteEmpty, QuantizationCancelled
from blockart.palettes.loader import get_palette
from blockart.palettes.palette import Palette, Swatch
from blockart.pipeline.average import average
from blockart.pipeline.index import PaletteIndex
from blockart.pipeline.quantize import grid_shape, quantize

BLACK_WHITE = Palette([Swatch("black", (0, 0, 0)), Swatch("white", (255, 255, 255))])

# Every gray level is its own swatch, so output equals the block averages
GRAYS = Palette([Swatch(f"gray{v}", (v, v, v)) for v in range(256)])


class _CancelAfterFirstRow(threading.Event):
    """Reports set from the second check onward, i.e. after row 0 is written."""

    def __init__(self):
        super().__init__()
        self.checks = 0

    def is_set(self):
        self.checks += 1
        return self.checks > 1


def _rgba(rgb: np.ndarray, alpha: int = 255) -> np.ndarray:
    h, w = rgb.shape[:2]
    out = np.full((h, w, 4), alpha, dtype=np.uint8)
    out[..., :3] = rgb
    return out


def _gray_image(values) -> np.ndarray:
    values = np.array(values, dtype=np.uint8)
    return _rgba(np.repeat(values[..., np.newaxis], 3, axis=-1))


def _random_image(h, w, seed=0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (h, w, 4), dtype=np.uint8)


def _reference_quantize(image, palette, block_size):
    """Block-by-block loop used to cross-check the vectorized quantizer."""
    index = PaletteIndex(palette)
    out = np.empty_like(image)
    counts = {}
    h, w = image.shape[:2]
    for y0 in range(0, h, block_size):
        for x0 in range(0, w, block_size):
            r, g, b, a = average(image, x0, y0, block_size)
            swatch = index.nearest_color(r, g, b)
            counts[swatch.rgb] = counts.get(swatch.rgb, 0) + 1
            out[y0:y0 + block_size, x0:x0 + block_size] = (*swatch.rgb, a)
    return out, counts


class TestScenarios:
    def test_uniform_dark_image_goes_black(self):
        img = _rgba(np.full((4, 4, 3), 10, dtype=np.uint8))
        result = quantize(img, BLACK_WHITE, 2)

        expected = np.zeros((4, 4, 4), dtype=np.uint8)
        expected[..., 3] = 255
        np.testing.assert_array_equal(result.image, expected)
        assert len(result.usage) == 1
        assert result.usage[0].swatch.name == "black"
        assert result.usage[0].count == 4

    def test_clipped_edge_blocks(self):
        img = _gray_image([[0, 10, 20], [30, 40, 50], [60, 70, 80]])
        result = quantize(img, GRAYS, 2)

        assert result.summary.grid_width == 2
        assert result.summary.grid_height == 2
        assert result.summary.block_count == 4
        expected = np.array([[20, 20, 35], [20, 20, 35], [65, 65, 80]], dtype=np.uint8)
        np.testing.assert_array_equal(result.image[..., 0], expected)
        np.testing.assert_array_equal(result.image[..., 1], expected)
        np.testing.assert_array_equal(result.image[..., 2], expected)

    def test_block_larger_than_image_is_one_block(self):
        img = _random_image(5, 7)
        result = quantize(img, get_palette("wplace"), 100)

        assert result.summary.block_count == 1
        assert len(result.usage) == 1
        assert result.usage[0].count == 1
        flat = result.image.reshape(-1, 4)
        assert (flat == flat[0]).all()

    def test_block_equal_to_max_dimension_is_one_block(self):
        img = _random_image(5, 7)
        result = quantize(img, get_palette("wplace"), 7)
        assert result.summary.block_count == 1


class TestAveragingInOutput:
    def test_floor_division_not_rounding(self):
        # (1 + 2) / 2 = 1.5 must floor to 1
        img = _gray_image([[1, 2]])
        result = quantize(img, GRAYS, 2)
        assert result.image[0, 0, 0] == 1
        assert result.image[0, 1, 0] == 1

    def test_alpha_is_block_average(self):
        img = _gray_image([[50, 50]])
        img[0, 0, 3] = 100
        img[0, 1, 3] = 201
        result = quantize(img, GRAYS, 2)
        assert result.image[0, 0, 3] == 150
        assert result.image[0, 1, 3] == 150

    def test_matches_block_by_block_reference(self):
        img = _random_image(23, 37, seed=3)
        palette = get_palette("wplace")
        for block_size in (1, 2, 5, 8):
            result = quantize(img, palette, block_size)
            expected_img, expected_counts = _reference_quantize(img, palette, block_size)
            np.testing.assert_array_equal(result.image, expected_img)
            assert {e.swatch.rgb: e.count for e in result.usage} == expected_counts


class TestQuantizeProperties:
    def test_output_same_shape(self):
        img = _random_image(31, 17)
        result = quantize(img, get_palette("wplace"), 4)
        assert result.image.shape == img.shape
        assert result.image.dtype == np.uint8

    def test_output_colors_in_palette(self):
        palette = get_palette("wplace")
        img = _random_image(32, 32)
        result = quantize(img, palette, 3)
        unique = set(map(tuple, result.image[..., :3].reshape(-1, 3).tolist()))
        palette_set = {s.rgb for s in palette}
        assert unique.issubset(palette_set)

    def test_blocks_are_uniform(self):
        img = _random_image(20, 22)
        block_size = 6
        result = quantize(img, get_palette("wplace"), block_size)
        for y0 in range(0, 20, block_size):
            for x0 in range(0, 22, block_size):
                block = result.image[y0:y0 + block_size, x0:x0 + block_size, :3].reshape(-1, 3)
                assert (block == block[0]).all()

    def test_usage_sums_to_block_count(self):
        h, w, block_size = 23, 37, 5
        result = quantize(_random_image(h, w), get_palette("wplace"), block_size)
        total = sum(e.count for e in result.usage)
        assert total == math.ceil(w / block_size) * math.ceil(h / block_size) == 40
        assert total == result.summary.block_count

    def test_usage_sorted_descending(self):
        result = quantize(_random_image(40, 40), get_palette("wplace"), 2)
        counts = [e.count for e in result.usage]
        assert counts == sorted(counts, reverse=True)

    def test_usage_ties_keep_first_seen_order(self):
        img = _gray_image([[255, 0]])
        result = quantize(img, BLACK_WHITE, 1)
        assert [e.swatch.name for e in result.usage] == ["white", "black"]

    def test_deterministic(self):
        img = _random_image(25, 25, seed=7)
        palette = get_palette("wplace")
        a = quantize(img, palette, 4)
        b = quantize(img, palette, 4)
        np.testing.assert_array_equal(a.image, b.image)
        assert a.usage == b.usage

    def test_idempotent_on_palette_image(self):
        palette = get_palette("wplace")
        first = quantize(_random_image(12, 9), palette, 1)
        second = quantize(first.image, palette, 1)
        np.testing.assert_array_equal(second.image, first.image)

    def test_input_not_modified(self):
        img = _random_image(10, 10)
        before = img.copy()
        quantize(img, get_palette("wplace"), 3)
        np.testing.assert_array_equal(img, before)

    def test_summary_dimensions(self):
        result = quantize(_random_image(30, 45), get_palette("wplace"), 10)
        s = result.summary
        assert (s.original_width, s.original_height) == (45, 30)
        assert (s.grid_width, s.grid_height) == (5, 3)
        assert s.original_pixels == 1350
        assert s.block_count == 15
        assert s.block_size == 10


class TestQuantizeErrors:
    @pytest.mark.parametrize("block_size", [0, -1, 2.5, True])
    def test_invalid_block_size(self, block_size):
        with pytest.raises(InvalidBlockSize):
            quantize(_random_image(4, 4), BLACK_WHITE, block_size)

    def test_invalid_block_size_is_value_error(self):
        with pytest.raises(ValueError):
            quantize(_random_image(4, 4), BLACK_WHITE, 0)

    def test_empty_palette(self):
        with pytest.raises(PaletteEmpty):
            quantize(_random_image(4, 4), Palette([]), 2)

    def test_rejects_rgb_buffer(self):
        img = np.zeros((4, 4, 3), dtype=np.uint8)
        with pytest.raises(ValueError):
            quantize(img, BLACK_WHITE, 2)

    def test_rejects_non_uint8(self):
        img = np.zeros((4, 4, 4), dtype=np.float32)
        with pytest.raises(ValueError):
            quantize(img, BLACK_WHITE, 2)

    def test_cancel_event(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(QuantizationCancelled):
            quantize(_random_image(8, 8), BLACK_WHITE, 2, cancel=cancel)

    def test_expired_deadline(self):
        with pytest.raises(QuantizationCancelled):
            quantize(_random_image(8, 8), BLACK_WHITE, 2, deadline=time.monotonic() - 1)

    def test_cancel_between_block_rows(self):
        cancel = _CancelAfterFirstRow()
        with pytest.raises(QuantizationCancelled):
            quantize(_random_image(8, 8), BLACK_WHITE, 2, cancel=cancel)
        assert cancel.checks == 2

    def test_unset_cancel_event_completes(self):
        result = quantize(_random_image(8, 8), BLACK_WHITE, 2, cancel=threading.Event())
        assert result.summary.block_count == 16


class TestGridShape:
    def test_exact_multiple(self):
        assert grid_shape(100, 50, 10) == (10, 5)

    def test_rounds_up(self):
        assert grid_shape(3, 3, 2) == (2, 2)
        assert grid_shape(101, 1, 10) == (11, 1)

    def test_rejects_zero(self):
        with pytest.raises(InvalidBlockSize):
            grid_shape(10, 10, 0)
