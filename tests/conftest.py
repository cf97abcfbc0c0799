# StegaVault test configuration
# Synthetic carriers (RGBA buffers, PNG files, WAV files) shared by all tests

import io
import struct

import numpy as np
import pytest
from PIL import Image

from stegavault.image.service.service import ImageCarrier
from stegavault.models.domain import SecretItem


def _chunk(chunk_id: bytes, payload: bytes) -> bytes:
    pad = b"\x00" if len(payload) % 2 else b""
    return chunk_id + struct.pack("<I", len(payload)) + payload + pad


@pytest.fixture
def wav_factory():
    """Build a RIFF/WAVE file; every header field can be overridden to produce bad carriers."""

    def build(
        n_samples=4096,
        bits_per_sample=16,
        channels=1,
        audio_format=1,
        sample_rate=8000,
        include_fmt=True,
        include_data=True,
        leading_chunks=(),
        seed=0,
    ):
        bytes_per_sample = max(1, bits_per_sample // 8)
        rng = np.random.default_rng(seed)
        data = rng.integers(0, 256, n_samples * bytes_per_sample, dtype=np.uint8).tobytes()

        fmt = struct.pack(
            "<HHIIHH",
            audio_format,
            channels,
            sample_rate,
            sample_rate * channels * bytes_per_sample,
            channels * bytes_per_sample,
            bits_per_sample,
        )
        body = b"".join(_chunk(cid, payload) for cid, payload in leading_chunks)
        if include_fmt:
            body += _chunk(b"fmt ", fmt)
        if include_data:
            body += _chunk(b"data", data)
        return b"RIFF" + struct.pack("<I", 4 + len(body)) + b"WAVE" + body

    return build


@pytest.fixture
def image_carrier_factory():
    """Random RGBA carrier with opaque alpha."""

    def build(width=16, height=16, seed=0):
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, (height, width, 4), dtype=np.uint8)
        pixels[:, :, 3] = 255
        return ImageCarrier.from_rgba(pixels.tobytes(), width, height)

    return build


@pytest.fixture
def png_factory():
    def build(width=64, height=64, mode="RGB", seed=0):
        rng = np.random.default_rng(seed)
        channels = len(mode)
        pixels = rng.integers(0, 256, (height, width, channels), dtype=np.uint8)
        img = Image.fromarray(pixels)
        out = io.BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()

    return build


@pytest.fixture
def text_item():
    return SecretItem.text("hello")


@pytest.fixture
def file_item():
    return SecretItem.file(bytes(range(17)), "secret.bin", "application/octet-stream")
