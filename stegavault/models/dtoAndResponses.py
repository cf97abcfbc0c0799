from pydantic import BaseModel
from typing import Optional, List

from stegavault.libs.utils import bytes_to_base64
from stegavault.models.domain import ItemKind, SecretItem


class ExtractedItem(BaseModel):
    type: str
    name: str
    mime: str
    text: Optional[str] = None
    base64: Optional[str] = None

    @classmethod
    def from_secret(cls, item: SecretItem) -> "ExtractedItem":
        """
        Items de texto, y archivos text/plain que sean UTF-8 válido, se devuelven
        como texto; el resto en base64
        """
        text = None
        if item.kind is ItemKind.TEXT:
            text = item.data.decode("utf-8", errors="replace")
        elif item.mime_type == "text/plain":
            try:
                text = item.data.decode("utf-8")
            except UnicodeDecodeError:
                # Binario etiquetado como texto: se entrega como archivo
                text = None

        if text is not None:
            return cls(
                type="text",
                name=item.name,
                mime=item.mime_type,
                text=text
            )
        return cls(
            type="file",
            name=item.name,
            mime=item.mime_type,
            base64=bytes_to_base64(item.data)
        )


class ExtractResponse(BaseModel):
    ok: bool
    items: List[ExtractedItem]


class CapacityResponse(BaseModel):
    status: str
    file_type: str
    capacity_bytes: int
    capacity_kb: float


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
