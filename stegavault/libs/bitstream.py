"""
Lector/escritor de bits sobre las posiciones escribibles de un portador.

Ambos códecs (imagen y audio) exponen la misma interfaz mínima:

    carrier.samples        -> np.ndarray uint8 (buffer propio, mutable)
    carrier.capacity_bits  -> int
    carrier.byte_indices(start, stop) -> índices en `samples` de los bits [start, stop)

Los bits se producen y consumen MSB primero dentro de cada byte. El trabajo se
hace por bloques de BLOCK_BITS para que la memoria temporal de los índices no
crezca con el tamaño del payload.
"""
import numpy as np

from stegavault.libs.errors import CapacityError

# Múltiplo de 8: cada bloque cubre bytes completos
BLOCK_BITS = 1 << 16
BLOCK_BYTES = BLOCK_BITS // 8


class BitWriter:
    """Escribe bytes en el LSB de las muestras, avanzando 8 bits por byte"""

    def __init__(self, carrier):
        self.carrier = carrier
        self.bit_idx = 0

    @property
    def remaining_bits(self) -> int:
        return self.carrier.capacity_bits - self.bit_idx

    def write_bytes(self, data: bytes) -> None:
        stop = self.bit_idx + len(data) * 8
        if stop > self.carrier.capacity_bits:
            # Se valida antes de tocar una sola muestra
            raise CapacityError(
                required_bytes=(stop + 7) // 8,
                available_bytes=self.carrier.capacity_bits // 8,
            )

        view = np.frombuffer(data, dtype=np.uint8)
        samples = self.carrier.samples
        for offset in range(0, len(view), BLOCK_BYTES):
            bits = np.unpackbits(view[offset:offset + BLOCK_BYTES])
            start = self.bit_idx + offset * 8
            idx = self.carrier.byte_indices(start, start + len(bits))
            samples[idx] = (samples[idx] & 0xFE) | bits
        self.bit_idx = stop


class BitReader:
    """Lee bytes del LSB de las muestras; nunca lee más allá de la capacidad"""

    def __init__(self, carrier):
        self.carrier = carrier
        self.bit_idx = 0

    @property
    def remaining_bytes(self) -> int:
        return (self.carrier.capacity_bits - self.bit_idx) // 8

    def read_bytes(self, n: int) -> bytes:
        stop = self.bit_idx + n * 8
        if stop > self.carrier.capacity_bits:
            raise CapacityError(
                required_bytes=(stop + 7) // 8,
                available_bytes=self.carrier.capacity_bits // 8,
                message="Out of capacity while reading.",
            )

        out = bytearray()
        samples = self.carrier.samples
        for start in range(self.bit_idx, stop, BLOCK_BITS):
            idx = self.carrier.byte_indices(start, min(start + BLOCK_BITS, stop))
            out += np.packbits(samples[idx] & 1).tobytes()
        self.bit_idx = stop
        return bytes(out)
