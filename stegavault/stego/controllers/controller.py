# ------------------------------------------------------------
# ROUTER UNIFICADO (/api): el tipo de portador sale del content-type
# ------------------------------------------------------------
import logging
import re
from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import Response

from stegavault import config
from stegavault.libs.errors import InputError
from stegavault.libs.utils import read_upload, safe_filename
from stegavault.libs.workers import pool
from stegavault.models.domain import CarrierKind, SecretItem
from stegavault.models.dtoAndResponses import ExtractedItem, ExtractResponse
from stegavault.stego.service.service import StegoEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Unified Steganography"])


def carrier_kind_for(content_type: Optional[str]) -> CarrierKind:
    content_type = content_type or ""
    if content_type.startswith("image/"):
        return CarrierKind.IMAGE
    if content_type.startswith("audio/"):
        return CarrierKind.AUDIO
    raise InputError(
        f"Unsupported cover file type: {content_type or 'unknown'}. Use images (PNG/JPEG) or WAV audio."
    )


async def build_secret_items(secret_text: str, secret_file: Optional[UploadFile]) -> List[SecretItem]:
    """Texto primero (si hay), luego el archivo (si hay)"""
    items = []
    if secret_text and secret_text.strip():
        items.append(SecretItem.text(secret_text))
    if secret_file is not None and secret_file.filename:
        data = await read_upload(secret_file, config.MAX_UPLOAD_BYTES)
        items.append(SecretItem.file(data, secret_file.filename, secret_file.content_type))
    if not items:
        raise InputError("At least one secret is required (text or file)")
    return items


async def embed_response(
        cover: UploadFile,
        kind: CarrierKind,
        secret_text: str,
        secret_file: Optional[UploadFile],
        password: Optional[str]
) -> Response:
    cover_bytes = await read_upload(cover, config.MAX_UPLOAD_BYTES)
    items = await build_secret_items(secret_text, secret_file)

    stego = await pool.run(StegoEngine.embed_carrier, cover_bytes, kind, items, password or "")

    if kind is CarrierKind.IMAGE:
        return Response(
            content=stego,
            media_type="image/png",
            headers={"Content-Disposition": 'attachment; filename="stego.png"'}
        )

    base_name = safe_filename(re.sub(r"\.[^.]+$", "", cover.filename or "audio"), "audio")
    return Response(
        content=stego,
        media_type="audio/wav",
        headers={"Content-Disposition": f'attachment; filename="{base_name}_stego.wav"'}
    )


async def extract_response(stego: UploadFile, kind: CarrierKind, password: Optional[str]) -> ExtractResponse:
    stego_bytes = await read_upload(stego, config.MAX_UPLOAD_BYTES)
    items = await pool.run(StegoEngine.extract_carrier, stego_bytes, kind, password or "")
    return ExtractResponse(ok=True, items=[ExtractedItem.from_secret(item) for item in items])


@router.post("/embed")
@router.post("/encode")
async def embed(
        cover: Optional[UploadFile] = File(None, description="Portador (imagen o WAV)"),
        secretText: str = Form("", description="Texto secreto"),
        secretFile: Optional[UploadFile] = File(None, description="Archivo secreto"),
        password: Optional[str] = Form(None, description="Contraseña opcional")
):
    """
    Oculta texto y/o archivo en el portador:
    - Imagen: 1 bit por canal R/G/B, se devuelve PNG
    - Audio: WAV PCM 8/16 bits, 1 bit por muestra
    - Con contraseña: AES-256-GCM (clave scrypt)
    """
    if cover is None:
        raise InputError("Cover file is required")
    kind = carrier_kind_for(cover.content_type)
    return await embed_response(cover, kind, secretText, secretFile, password)


@router.post("/extract", response_model=ExtractResponse)
@router.post("/decode", response_model=ExtractResponse)
async def extract(
        stego: Optional[UploadFile] = File(None, description="Archivo con datos ocultos"),
        password: Optional[str] = Form(None, description="Contraseña si está protegido")
):
    """
    Extrae los elementos ocultos en el mismo orden en que se guardaron.
    Texto y archivos text/plain en UTF-8 vuelven en `text`; el resto en `base64`.
    """
    if stego is None:
        raise InputError("Stego file is required")
    try:
        kind = carrier_kind_for(stego.content_type)
    except InputError:
        raise InputError("Unsupported stego file type")
    return await extract_response(stego, kind, password)
