# ------------------------------------------------------------
# ENDPOINTS PARA IMÁGENES
# ------------------------------------------------------------
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from stegavault.models.domain import CarrierKind
from stegavault.models.dtoAndResponses import ExtractResponse
from stegavault.stego.controllers.controller import embed_response, extract_response

router = APIRouter(prefix="/image", tags=["Image Steganography"])


def _require_image(image: UploadFile) -> None:
    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(400, "Only image files are allowed")


@router.post("/stego/embed")
async def embed_image(
    image: UploadFile = File(...),
    secretText: str = Form(""),
    secretFile: Optional[UploadFile] = File(None),
    password: Optional[str] = Form(None)
):
    """Ocultar texto/archivo en imagen usando LSB (R, G, B); devuelve PNG"""
    _require_image(image)
    return await embed_response(image, CarrierKind.IMAGE, secretText, secretFile, password)


@router.post("/stego/extract", response_model=ExtractResponse)
async def extract_image(
    image: UploadFile = File(...),
    password: Optional[str] = Form(None)
):
    """Extraer elementos ocultos de imagen"""
    _require_image(image)
    return await extract_response(image, CarrierKind.IMAGE, password)
