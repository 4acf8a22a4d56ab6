# main.py
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import config
from gym_manager.infrastructure.api.error_handlers import register_error_handlers
from gym_manager.infrastructure.persistence.database import init_database

# Importamos los routers de la capa de infraestructura
from gym_manager.infrastructure.api.routers import (
    class_registrations_router,
    invoices_router,
    public_gyms_router,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s')


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    yield


app = FastAPI(
    title="API de Gym Manager",
    description="Inscripción a clases y facturación electrónica de los gimnasios.",
    version="1.0.0",
    lifespan=lifespan,
)

# Configuración de CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Invoice-Filename"],
)

register_error_handlers(app)

app.include_router(class_registrations_router.router)
app.include_router(invoices_router.router)
app.include_router(public_gyms_router.router)

# Los comprobantes guardados en disco se sirven desde la misma app
if config.RECEIPTS_PUBLIC_BASE_URL.startswith("/"):
    os.makedirs(config.RECEIPTS_DIR, exist_ok=True)
    app.mount(
        config.RECEIPTS_PUBLIC_BASE_URL.rstrip("/"),
        StaticFiles(directory=config.RECEIPTS_DIR),
        name="receipts",
    )


@app.get("/", tags=["Health Check"])
def read_root():
    return {"status": "ok", "message": "Bienvenido a la API de Gym Manager"}
