# config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


# --- CONFIGURACIÓN DE LA API ---
CORS_ORIGINS = [
    origin.strip()
    for origin in _env("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# --- CONFIGURACIÓN DE FACTURALIVE ---
FACTURA_LIVE_BASE_ENDPOINT = _env("FACTURA_LIVE_ENDPOINT") or None

# El endpoint base sirve de respaldo solo si coincide con el ambiente ("test" en la URL)
FACTURA_LIVE_TEST_ENDPOINT = (
    _env("FACTURA_LIVE_TEST_ENDPOINT")
    or (FACTURA_LIVE_BASE_ENDPOINT if FACTURA_LIVE_BASE_ENDPOINT and "test" in FACTURA_LIVE_BASE_ENDPOINT.lower() else None)
    or "https://www.facturalive.com/api/envia-factura_test.php"
)
FACTURA_LIVE_PROD_ENDPOINT = (
    _env("FACTURA_LIVE_PROD_ENDPOINT")
    or (FACTURA_LIVE_BASE_ENDPOINT if FACTURA_LIVE_BASE_ENDPOINT and "test" not in FACTURA_LIVE_BASE_ENDPOINT.lower() else None)
    or "https://www.facturalive.com/api/envia-factura.php"
)

# Credenciales por defecto para los gimnasios que no tienen las propias
FACTURA_LIVE_USER_ID = _env("FACTURA_LIVE_USER_ID")
FACTURA_LIVE_COMPANY_ID = _env("FACTURA_LIVE_COMPANY_ID")
FACTURA_LIVE_BRANCH_CODE = _env("FACTURA_LIVE_BRANCH_CODE")
FACTURA_LIVE_BRANCH_ID = _env("FACTURA_LIVE_BRANCH_ID")
FACTURA_LIVE_PASSWORD = _env("FACTURA_LIVE_PASSWORD")
FACTURA_LIVE_ENVIRONMENT = _env("FACTURA_LIVE_ENVIRONMENT")

# Sin valor = sin timeout propio (se usa el comportamiento por defecto de requests)
FACTURA_LIVE_TIMEOUT = float(_env("FACTURA_LIVE_TIMEOUT")) if _env("FACTURA_LIVE_TIMEOUT") else None

FACTURA_LIVE_USER_AGENT = "gym-manager-pro/1.0"

# --- CONFIGURACIÓN DE COMPROBANTES DE INSCRIPCIÓN ---
RECEIPTS_DIR = _env("RECEIPTS_DIR", "/tmp/class-receipts")
RECEIPTS_PUBLIC_BASE_URL = _env("RECEIPTS_PUBLIC_BASE_URL", "/receipts")
MAX_RECEIPT_SIZE_MB = 5
