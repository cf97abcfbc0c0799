"""
Orquestación de embed/extract sobre cualquier portador.

Embed:   items -> PayloadEngine.pack -> CryptoEngine.encrypt (opcional)
         -> chequeo de capacidad -> BitWriter sobre el portador
Extract: BitReader -> cabecera (ENCv1 / STEGv1) -> descifrado (opcional)
         -> PayloadEngine.parse
"""
import logging
from typing import List, Optional, Union

from stegavault.audio.service.service import AudioCarrier
from stegavault.image.service.service import ImageCarrier
from stegavault.libs.bitstream import BitReader, BitWriter
from stegavault.libs.errors import CapacityError, FormatError, InputError
from stegavault.libs.utils import (
    CONTAINER_MAGIC,
    ENVELOPE_HEADER_SIZE,
    ENVELOPE_MAGIC,
    CryptoEngine,
    PayloadEngine,
    read_u32,
)
from stegavault.models.domain import CarrierKind, SecretItem

logger = logging.getLogger(__name__)

CarrierView = Union[ImageCarrier, AudioCarrier]
# "image" / "audio" también se aceptan tal cual llegan del controlador
KindLike = Union[CarrierKind, str]

CARRIERS = {
    CarrierKind.IMAGE: ImageCarrier,
    CarrierKind.AUDIO: AudioCarrier,
}


def _check_declared(reader: BitReader, declared: int, what: str) -> None:
    if declared > reader.remaining_bytes:
        raise FormatError(f"Declared {what} length exceeds carrier capacity.")


class StegoEngine:
    """Punto de entrada del códec: embed/extract para imagen y audio"""

    @staticmethod
    def decode_carrier(data: bytes, kind: KindLike) -> CarrierView:
        try:
            carrier_cls = CARRIERS[CarrierKind(kind)]
        except ValueError:
            raise InputError(f"Unsupported carrier kind: {kind}")
        return carrier_cls.decode(data)

    @staticmethod
    def encode_carrier(carrier: CarrierView) -> bytes:
        if carrier.kind is CarrierKind.IMAGE:
            return carrier.encode_png()
        return carrier.encode_wav()

    @staticmethod
    def capacity_bytes(data: bytes, kind: KindLike) -> int:
        return StegoEngine.decode_carrier(data, kind).capacity_bits // 8

    @staticmethod
    def embed(carrier: CarrierView, items: List[SecretItem], password: Optional[str] = None) -> bytes:
        """
        Oculta los items en el portador y devuelve el buffer crudo mutado.

        Raises:
            InputError: lista de items vacía
            CapacityError: el payload no cabe (antes de mutar nada)
        """
        container = PayloadEngine.pack(items)
        payload = CryptoEngine.encrypt(container, password)

        need_bits = len(payload) * 8
        if need_bits > carrier.capacity_bits:
            raise CapacityError(
                required_bytes=len(payload),
                available_bytes=carrier.capacity_bits // 8,
            )

        BitWriter(carrier).write_bytes(payload)
        logger.info(
            "Embedded %s item(s), %s bytes (%s) into %s carrier, %.2f%% of capacity",
            len(items),
            len(payload),
            "encrypted" if payload is not container else "plain",
            carrier.kind.value,
            need_bits * 100 / carrier.capacity_bits,
        )
        return carrier.to_bytes()

    @staticmethod
    def read_container(reader: BitReader, password: Optional[str] = None) -> bytes:
        """Lee la cabecera, decide sobre cifrado o contenedor plano y devuelve STEGv1"""
        first5 = reader.read_bytes(len(ENVELOPE_MAGIC))

        if first5 == ENVELOPE_MAGIC:
            header = reader.read_bytes(ENVELOPE_HEADER_SIZE)
            cipher_len = read_u32(header, ENVELOPE_HEADER_SIZE - 4)
            _check_declared(reader, cipher_len, "ciphertext")
            ciphertext = reader.read_bytes(cipher_len)
            return CryptoEngine.decrypt(first5 + header + ciphertext, password)

        magic = first5 + reader.read_bytes(len(CONTAINER_MAGIC) - len(ENVELOPE_MAGIC))
        if magic != CONTAINER_MAGIC:
            raise FormatError("No payload found (magic mismatch).")

        meta_len_buf = reader.read_bytes(4)
        meta_len = read_u32(meta_len_buf)
        _check_declared(reader, meta_len, "metadata")
        meta_buf = reader.read_bytes(meta_len)

        data_total = sum(m["len"] for m in PayloadEngine.decode_metadata(meta_buf))
        _check_declared(reader, data_total, "item data")
        data = reader.read_bytes(data_total)

        return magic + meta_len_buf + meta_buf + data

    @staticmethod
    def extract(carrier: CarrierView, password: Optional[str] = None) -> List[SecretItem]:
        container = StegoEngine.read_container(BitReader(carrier), password)
        items = PayloadEngine.parse(container)
        logger.info("Extracted %s item(s) from %s carrier", len(items), carrier.kind.value)
        return items

    # ------------------------------------------------------------
    # Superficie a nivel de archivo (decodificar / re-codificar)
    # ------------------------------------------------------------

    @staticmethod
    def embed_carrier(
            carrier_bytes: bytes,
            kind: KindLike,
            items: List[SecretItem],
            password: Optional[str] = None
    ) -> bytes:
        """Devuelve un PNG (imagen) o WAV (audio) con los items ocultos"""
        carrier = StegoEngine.decode_carrier(carrier_bytes, kind)
        StegoEngine.embed(carrier, items, password)
        return StegoEngine.encode_carrier(carrier)

    @staticmethod
    def extract_carrier(stego_bytes: bytes, kind: KindLike, password: Optional[str] = None) -> List[SecretItem]:
        carrier = StegoEngine.decode_carrier(stego_bytes, kind)
        return StegoEngine.extract(carrier, password)
