# Esteganografía para imágenes (RGBA crudo, 1 bit por canal R/G/B)
import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from stegavault.libs.errors import FormatError
from stegavault.models.domain import CarrierKind

logger = logging.getLogger(__name__)

RGBA_STRIDE = 4
WRITABLE_CHANNELS = 3  # R, G, B; el alfa nunca se toca


@dataclass
class ImageCarrier:
    """
    Vista bit-direccionable sobre un buffer RGBA crudo.

    El bit i va al canal (i mod 3) del píxel i // 3.
    """

    width: int
    height: int
    samples: np.ndarray

    kind = CarrierKind.IMAGE

    @classmethod
    def from_rgba(cls, rgba: bytes, width: int, height: int) -> "ImageCarrier":
        expected = width * height * RGBA_STRIDE
        if len(rgba) != expected:
            raise FormatError(
                f"RGBA buffer size mismatch: expected {expected} bytes, got {len(rgba)}."
            )
        # Copia propia: el llamador nunca comparte el buffer que se muta
        samples = np.frombuffer(bytes(rgba), dtype=np.uint8).copy()
        return cls(width=width, height=height, samples=samples)

    @classmethod
    def decode(cls, image_bytes: bytes) -> "ImageCarrier":
        """Decodifica PNG/JPEG/BMP/... a RGBA con Pillow"""
        try:
            img = Image.open(io.BytesIO(image_bytes))
            rgba = img.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise FormatError(f"Could not decode cover image: {e}")

        width, height = rgba.size
        logger.debug("Decoded image carrier %sx%s (mode %s)", width, height, img.mode)
        return cls.from_rgba(rgba.tobytes(), width, height)

    @property
    def capacity_bits(self) -> int:
        return self.width * self.height * WRITABLE_CHANNELS

    def byte_indices(self, start: int, stop: int) -> np.ndarray:
        q, r = np.divmod(np.arange(start, stop, dtype=np.intp), WRITABLE_CHANNELS)
        q *= RGBA_STRIDE
        q += r
        return q

    def to_bytes(self) -> bytes:
        return self.samples.tobytes()

    def encode_png(self) -> bytes:
        """Re-codifica el buffer (posiblemente mutado) como PNG sin pérdida"""
        img = Image.frombytes("RGBA", (self.width, self.height), self.to_bytes())
        out = io.BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()
