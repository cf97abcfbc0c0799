# ------------------------------------------------------------
# ENDPOINTS PARA AUDIO
# ------------------------------------------------------------
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from stegavault.models.domain import CarrierKind
from stegavault.models.dtoAndResponses import ExtractResponse
from stegavault.stego.controllers.controller import embed_response, extract_response

router = APIRouter(prefix="/audio", tags=["Audio Steganography"])


def _require_audio(audio: UploadFile) -> None:
    if not (audio.content_type or "").startswith("audio/"):
        raise HTTPException(400, "Only audio files are allowed")


@router.post("/stego/embed")
async def embed_audio(
    audio: UploadFile = File(..., description="Audio portador (WAV PCM 8/16 bits)"),
    secretText: str = Form(""),
    secretFile: Optional[UploadFile] = File(None),
    password: Optional[str] = Form(None)
):
    """Ocultar texto/archivo en audio (1 bit por muestra); devuelve WAV"""
    _require_audio(audio)
    return await embed_response(audio, CarrierKind.AUDIO, secretText, secretFile, password)


@router.post("/stego/extract", response_model=ExtractResponse)
async def extract_audio(
    audio: UploadFile = File(...),
    password: Optional[str] = Form(None)
):
    """Extraer elementos ocultos de audio"""
    _require_audio(audio)
    return await extract_response(audio, CarrierKind.AUDIO, password)
