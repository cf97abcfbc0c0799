from dataclasses import dataclass
from enum import Enum


class ItemKind(str, Enum):
    TEXT = "text"
    FILE = "file"


class CarrierKind(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"


@dataclass(frozen=True)
class SecretItem:
    """Elemento secreto a ocultar (texto o archivo). Inmutable una vez creado."""

    kind: ItemKind
    name: str
    mime_type: str
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)

    @classmethod
    def text(cls, message: str, name: str = "message.txt") -> "SecretItem":
        return cls(ItemKind.TEXT, name, "text/plain", message.encode("utf-8"))

    @classmethod
    def file(cls, data: bytes, name: str = None, mime_type: str = None) -> "SecretItem":
        return cls(
            ItemKind.FILE,
            name or "secret",
            mime_type or "application/octet-stream",
            bytes(data),
        )
