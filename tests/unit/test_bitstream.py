"""
Unit tests for the bit reader/writer shared by both carrier kinds.
"""

import tracemalloc

import numpy as np
import pytest

from stegavault.image.service.service import ImageCarrier
from stegavault.libs.bitstream import BLOCK_BITS, BitReader, BitWriter
from stegavault.libs.errors import CapacityError


def _blank_image(width, height, fill=0):
    pixels = np.full((height, width, 4), fill, dtype=np.uint8)
    pixels[:, :, 3] = 255
    return ImageCarrier.from_rgba(pixels.tobytes(), width, height)


class TestBitWriter:

    def test_bits_are_written_msb_first_across_rgb_channels(self):
        carrier = _blank_image(3, 1)  # 9 bits

        BitWriter(carrier).write_bytes(b"\xa5")  # 1010 0101

        lsbs = [int(carrier.samples[i] & 1) for i in (0, 1, 2, 4, 5, 6, 8, 9)]
        assert lsbs == [1, 0, 1, 0, 0, 1, 0, 1]

    def test_alpha_channel_is_never_touched(self):
        carrier = _blank_image(3, 1)

        BitWriter(carrier).write_bytes(b"\xff")

        assert list(carrier.samples[3::4]) == [255, 255, 255]

    def test_only_the_lowest_bit_changes(self):
        carrier = _blank_image(4, 1, fill=0xAA)

        BitWriter(carrier).write_bytes(b"\xff")

        for i in (0, 1, 2, 4, 5, 6, 8, 9):
            assert carrier.samples[i] == 0xAB

    def test_cursor_advances_eight_bits_per_byte(self):
        carrier = _blank_image(8, 1)
        writer = BitWriter(carrier)

        writer.write_bytes(b"\x01\x02")

        assert writer.bit_idx == 16
        assert writer.remaining_bits == 24 - 16

    def test_overflow_fails_before_any_sample_is_written(self):
        carrier = _blank_image(3, 1)  # 9 bits, room for one byte only
        before = carrier.samples.copy()
        writer = BitWriter(carrier)

        with pytest.raises(CapacityError):
            writer.write_bytes(b"\xff\xff")

        assert np.array_equal(carrier.samples, before)
        assert writer.bit_idx == 0


class TestBitReader:

    def test_reads_back_what_was_written(self):
        carrier = _blank_image(10, 10)
        BitWriter(carrier).write_bytes(b"STEGv1\x00\x01")

        reader = BitReader(carrier)

        assert reader.read_bytes(5) == b"STEGv"
        assert reader.read_bytes(3) == b"1\x00\x01"

    def test_zero_length_read(self):
        reader = BitReader(_blank_image(1, 1))

        assert reader.read_bytes(0) == b""
        assert reader.bit_idx == 0

    def test_reading_past_capacity_fails(self):
        carrier = _blank_image(3, 1)  # 9 bits
        reader = BitReader(carrier)
        reader.read_bytes(1)

        with pytest.raises(CapacityError, match="Out of capacity while reading"):
            reader.read_bytes(1)

    def test_remaining_bytes_rounds_down(self):
        reader = BitReader(_blank_image(3, 1))

        assert reader.remaining_bytes == 1
        reader.read_bytes(1)
        assert reader.remaining_bytes == 0


class TestLargePayloads:

    def test_round_trip_across_block_boundaries(self):
        carrier = _blank_image(300, 300)
        data = np.random.default_rng(5).integers(0, 256, 3 * BLOCK_BITS // 8 + 11, dtype=np.uint8).tobytes()
        writer = BitWriter(carrier)

        writer.write_bytes(b"abc")
        writer.write_bytes(data)

        reader = BitReader(carrier)
        assert reader.read_bytes(3) == b"abc"
        assert reader.read_bytes(len(data)) == data
        assert reader.bit_idx == writer.bit_idx

    def test_peak_memory_stays_proportional_to_payload(self):
        carrier = _blank_image(1000, 1000)
        data = np.random.default_rng(7).integers(0, 256, 370_000, dtype=np.uint8).tobytes()

        tracemalloc.start()
        try:
            BitWriter(carrier).write_bytes(data)
            out = BitReader(carrier).read_bytes(len(data))
            _, peak = tracemalloc.get_traced_memory()
        finally:
            tracemalloc.stop()

        assert out == data
        assert peak < 20 * len(data)
