# gym_manager/infrastructure/api/error_handlers.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gym_manager.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)


def error_body(message: str, code: ErrorCode, details=None) -> dict:
    body = {"error": message, "code": code.value}
    body.update(details or {})
    return body


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code, exc.details))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> 400 cuerpo inválido: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content=error_body("La solicitud tiene un formato inválido.", ErrorCode.INVALID_REQUEST),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Error inesperado en {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Ocurrió un error inesperado. Intenta nuevamente.", "code": "INTERNAL_ERROR"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
