# Configuración leída de variables de entorno
import os

ORIGINS_ENV = (
    os.getenv("CLIENT_ORIGIN")
    or os.getenv("CLIENT_ORIGINS")
    or "http://localhost:5173,https://stegnography-seven.vercel.app"
)
ALLOWED_ORIGINS = [s.strip() for s in ORIGINS_ENV.split(",") if s.strip()]

# Cualquier http://localhost:<puerto> se acepta además de ALLOWED_ORIGINS
LOCAL_ORIGIN_REGEX = r"^http://localhost:\d+$"

PORT = int(os.getenv("PORT", "4000"))

MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "100"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

STEGO_WORKERS = int(os.getenv("STEGO_WORKERS", "4"))
STEGO_MAX_PENDING = int(os.getenv("STEGO_MAX_PENDING", "16"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
