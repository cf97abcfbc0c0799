# Esteganografía para audio WAV (PCM 8/16 bits, 1 bit por muestra)
import logging
import struct
from dataclasses import dataclass

import numpy as np

from stegavault.libs.errors import FormatError
from stegavault.models.domain import CarrierKind

logger = logging.getLogger(__name__)

SUPPORTED_BIT_DEPTHS = (8, 16)
WAVE_FORMAT_PCM = 1


@dataclass(frozen=True)
class WavFormat:
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int


@dataclass(frozen=True)
class WavHeader:
    data_offset: int
    data_length: int
    fmt: WavFormat


def parse_wav_header(buf: bytes) -> WavHeader:
    """
    Recorre los chunks RIFF y valida que el audio sea PCM 8/16 bits con chunk `data`.

    Cada defecto produce un FormatError con un mensaje específico.
    """
    if len(buf) < 12 or buf[0:4] != b"RIFF" or buf[8:12] != b"WAVE":
        raise FormatError("Audio cover must be WAV (RIFF/WAVE).")

    offset = 12
    fmt = None
    data_offset = -1
    data_length = -1

    while offset + 8 <= len(buf):
        chunk_id = buf[offset:offset + 4]
        (size,) = struct.unpack_from("<I", buf, offset + 4)
        start = offset + 8
        end = start + size
        if end > len(buf):
            break

        if chunk_id == b"fmt ":
            if size < 16:
                raise FormatError("Invalid WAV: fmt chunk too short.")
            fmt = WavFormat(*struct.unpack_from("<HHIIHH", buf, start))
        elif chunk_id == b"data":
            data_offset = start
            data_length = size

        # Los chunks de tamaño impar llevan un byte de relleno
        offset = end + (size % 2)

    if fmt is None:
        raise FormatError("Invalid WAV: missing fmt chunk.")
    if fmt.audio_format != WAVE_FORMAT_PCM:
        raise FormatError("WAV must be PCM (uncompressed).")
    if fmt.bits_per_sample not in SUPPORTED_BIT_DEPTHS:
        raise FormatError(
            f"Unsupported WAV bit depth: {fmt.bits_per_sample}. Use 8 or 16-bit PCM."
        )
    if data_offset < 0 or data_length <= 0:
        raise FormatError("Invalid WAV: missing data chunk.")

    return WavHeader(data_offset=data_offset, data_length=data_length, fmt=fmt)


@dataclass
class AudioCarrier:
    """
    Vista bit-direccionable sobre la región `data` de un WAV validado.

    El bit i va al LSB del primer byte (little-endian) de la muestra i, en el
    orden del archivo (los canales quedan intercalados tal cual).
    """

    samples: np.ndarray
    header: WavHeader

    kind = CarrierKind.AUDIO

    @classmethod
    def decode(cls, wav_bytes: bytes) -> "AudioCarrier":
        header = parse_wav_header(wav_bytes)
        logger.debug(
            "WAV carrier: %s ch, %s Hz, %s-bit, %s data bytes",
            header.fmt.num_channels,
            header.fmt.sample_rate,
            header.fmt.bits_per_sample,
            header.data_length,
        )
        # Copia propia del archivo completo; solo se tocan bytes de la región data
        samples = np.frombuffer(bytes(wav_bytes), dtype=np.uint8).copy()
        return cls(samples=samples, header=header)

    @property
    def bytes_per_sample(self) -> int:
        return self.header.fmt.bits_per_sample // 8

    @property
    def capacity_bits(self) -> int:
        return self.header.data_length // self.bytes_per_sample

    def byte_indices(self, start: int, stop: int) -> np.ndarray:
        i = np.arange(start, stop, dtype=np.intp)
        i *= self.bytes_per_sample
        i += self.header.data_offset
        return i

    def to_bytes(self) -> bytes:
        return self.samples.tobytes()

    def encode_wav(self) -> bytes:
        """El WAV se devuelve con la misma cabecera; solo cambian LSBs de muestras"""
        return self.to_bytes()
