"""
StegaVault API - esteganografía LSB en imágenes y audio WAV
Contenedor STEGv1 con cifrado opcional ENCv1 (AES-256-GCM + scrypt)
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, UploadFile, File, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stegavault import config
from stegavault.audio.controllers.controller import router as audio_router
from stegavault.image.controllers.controller import router as image_router
from stegavault.stego.controllers.controller import router as stego_router, carrier_kind_for
from stegavault.libs.errors import StegoError
from stegavault.libs.utils import read_upload
from stegavault.libs.workers import pool
from stegavault.models.dtoAndResponses import CapacityResponse, HealthResponse
from stegavault.stego.service.service import StegoEngine

logger = logging.getLogger("stegavault")


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Al apagar: no se aceptan más trabajos en el pool compartido
    pool.shutdown(wait=False)


app = FastAPI(
    title="StegaVault API",
    description="Oculta texto y archivos en imágenes y audio WAV con cifrado opcional",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_origin_regex=config.LOCAL_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

# Registrar controladores
app.include_router(stego_router)
app.include_router(image_router)
app.include_router(audio_router)


# ------------------------------------------------------------
# MANEJO DE ERRORES
# ------------------------------------------------------------

@app.exception_handler(StegoError)
async def stego_error_handler(request: Request, exc: StegoError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Campos de formulario ausentes o mal tipados, en el mismo formato {"error": ...}
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{field}: {err.get('msg', 'invalid')}" if field else err.get("msg", "invalid"))
    message = "; ".join(problems) or "Invalid request."
    logger.warning("%s %s -> validation error: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Unexpected server error."})


# ------------------------------------------------------------
# ENDPOINTS GENERALES
# ------------------------------------------------------------

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.get("/", response_model=HealthResponse)
def root():
    return HealthResponse(message="StegaVault Backend is running!", status="OK", timestamp=_now())


@app.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(status="OK", timestamp=_now())


@app.post("/stego/capacity", response_model=CapacityResponse)
async def calculate_capacity(file: UploadFile = File(...)):
    """Calcula capacidad de almacenamiento (imagen: 3 bits/píxel, audio: 1 bit/muestra)"""
    kind = carrier_kind_for(file.content_type)
    data = await read_upload(file, config.MAX_UPLOAD_BYTES)
    capacity_bytes = await pool.run(StegoEngine.capacity_bytes, data, kind)

    return CapacityResponse(
        status="success",
        file_type=kind.value,
        capacity_bytes=capacity_bytes,
        capacity_kb=round(capacity_bytes / 1024, 2)
    )


if __name__ == "__main__":
    import uvicorn
    logger.info("StegaVault Backend running on port %s", config.PORT)
    logger.info("CORS allowed: %s", ", ".join(config.ALLOWED_ORIGINS))
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
