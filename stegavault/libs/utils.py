import base64
import json
import logging
import os
import re
import struct
from typing import List, Optional

from fastapi import HTTPException, UploadFile
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from stegavault.libs.errors import AuthError, FormatError, InputError
from stegavault.models.domain import ItemKind, SecretItem

logger = logging.getLogger(__name__)

CONTAINER_MAGIC = b"STEGv1"
ENVELOPE_MAGIC = b"ENCv1"

SALT_SIZE = 16
IV_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32

# salt + iv + tag + cipherLen
ENVELOPE_HEADER_SIZE = SALT_SIZE + IV_SIZE + TAG_SIZE + 4

# Parámetros scrypt por defecto de la versión original del servicio (parte del formato)
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


def u32(n: int) -> bytes:
    return struct.pack(">I", n)


def read_u32(buf: bytes, offset: int = 0) -> int:
    return struct.unpack_from(">I", buf, offset)[0]


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode('utf-8')


def safe_filename(name: Optional[str], fallback: str = "file") -> str:
    return re.sub(r"[^\w.\-]+", "_", name or fallback)[:100] or fallback


async def read_upload(upload_file: UploadFile, max_bytes: int) -> bytes:
    """Lee el upload completo en memoria respetando el límite de tamaño"""
    data = await upload_file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(413, f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")
    return data


# ========================================
# CONTENEDOR PLANO (STEGv1)
# ========================================

class PayloadEngine:
    """Empaqueta y desempaqueta el contenedor STEGv1"""

    @staticmethod
    def pack(items: List[SecretItem]) -> bytes:
        """
        STEGv1 | metaLen (u32 BE) | metaJSON | bytes de cada item en orden
        """
        if not items:
            raise InputError("No secret data provided")

        meta = {
            "v": 1,
            "items": [
                {"t": item.kind.value, "name": item.name, "mime": item.mime_type, "len": item.length}
                for item in items
            ],
        }
        meta_buf = json.dumps(meta, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        data = b"".join(item.data for item in items)
        return CONTAINER_MAGIC + u32(len(meta_buf)) + meta_buf + data

    @staticmethod
    def decode_metadata(meta_buf: bytes) -> List[dict]:
        """
        Decodifica y valida el JSON de metadata.

        Returns:
            Lista de descriptores {"t", "name", "mime", "len"}

        Raises:
            FormatError: si el JSON no es válido o algún descriptor está mal formado
        """
        try:
            meta = json.loads(meta_buf.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            raise FormatError("Corrupted container metadata.")

        if not isinstance(meta, dict) or meta.get("v") != 1:
            raise FormatError("Corrupted container metadata: unsupported version.")

        items = meta.get("items")
        if not isinstance(items, list) or not items:
            raise FormatError("Corrupted container metadata: no items.")

        for m in items:
            if (
                not isinstance(m, dict)
                or m.get("t") not in (ItemKind.TEXT.value, ItemKind.FILE.value)
                or not isinstance(m.get("name"), str)
                or not isinstance(m.get("mime"), str)
                or not isinstance(m.get("len"), int)
                or isinstance(m.get("len"), bool)
                or m["len"] < 0
            ):
                raise FormatError("Corrupted container metadata: invalid item descriptor.")

        return items

    @staticmethod
    def parse(container: bytes) -> List[SecretItem]:
        """Reconstruye los items en el mismo orden; todo o nada"""
        if container[:len(CONTAINER_MAGIC)] != CONTAINER_MAGIC:
            raise FormatError("No payload found (magic mismatch).")

        off = len(CONTAINER_MAGIC)
        if off + 4 > len(container):
            raise FormatError("Container truncated: missing metadata length.")
        meta_len = read_u32(container, off)
        off += 4

        # La longitud declarada se valida antes de decodificar el JSON
        if off + meta_len > len(container):
            raise FormatError("Declared metadata length exceeds container size.")
        descriptors = PayloadEngine.decode_metadata(container[off:off + meta_len])
        off += meta_len

        items = []
        for m in descriptors:
            if off + m["len"] > len(container):
                raise FormatError(f"Item '{m['name']}' length exceeds container size.")
            items.append(SecretItem(ItemKind(m["t"]), m["name"], m["mime"], container[off:off + m["len"]]))
            off += m["len"]

        return items


# ========================================
# SOBRE CIFRADO (ENCv1)
# ========================================

class CryptoEngine:
    """Motor de cifrado AES-256-GCM con clave derivada por scrypt"""

    @staticmethod
    def derive_key(password: str, salt: bytes) -> bytes:
        """Deriva una clave de 256 bits desde una contraseña usando scrypt"""
        kdf = Scrypt(
            salt=salt,
            length=KEY_SIZE,
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
            backend=default_backend()
        )
        return kdf.derive(password.encode('utf-8'))

    @staticmethod
    def encrypt(container: bytes, password: Optional[str] = None) -> bytes:
        """
        Cifra el contenedor si hay contraseña; si no, lo devuelve intacto.
        Salt e IV son nuevos en cada llamada.
        """
        if not password:
            return container

        salt = os.urandom(SALT_SIZE)
        iv = os.urandom(IV_SIZE)
        key = CryptoEngine.derive_key(password, salt)

        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(iv),
            backend=default_backend()
        )
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(container) + encryptor.finalize()

        return ENVELOPE_MAGIC + salt + iv + encryptor.tag + u32(len(ciphertext)) + ciphertext

    @staticmethod
    def decrypt(envelope: bytes, password: Optional[str] = None) -> bytes:
        """
        Descifra un sobre ENCv1.

        Raises:
            FormatError: cabecera o longitud inválidas
            AuthError: sin contraseña, o el tag GCM no verifica (contraseña
                incorrecta o datos alterados, indistinguibles a propósito)
        """
        if envelope[:len(ENVELOPE_MAGIC)] != ENVELOPE_MAGIC:
            raise FormatError("Invalid encrypted payload header.")
        off = len(ENVELOPE_MAGIC)
        if off + ENVELOPE_HEADER_SIZE > len(envelope):
            raise FormatError("Encrypted payload truncated.")

        salt = envelope[off:off + SALT_SIZE]
        off += SALT_SIZE
        iv = envelope[off:off + IV_SIZE]
        off += IV_SIZE
        tag = envelope[off:off + TAG_SIZE]
        off += TAG_SIZE
        cipher_len = read_u32(envelope, off)
        off += 4
        if off + cipher_len > len(envelope):
            raise FormatError("Encrypted payload truncated.")
        ciphertext = envelope[off:off + cipher_len]

        if not password:
            raise AuthError("Password required to decrypt payload.")

        key = CryptoEngine.derive_key(password, salt)
        cipher = Cipher(
            algorithms.AES(key),
            modes.GCM(iv, tag),
            backend=default_backend()
        )
        decryptor = cipher.decryptor()
        try:
            return decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag:
            raise AuthError("Decryption failed: wrong password or corrupted data.")
