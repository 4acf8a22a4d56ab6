# gym_manager/application/use_cases/register_for_class.py
import logging
import os
import uuid
from datetime import datetime
from typing import Callable, Optional, Tuple

import config
from gym_manager.domain.errors import (
    ConflictError,
    DependencyError,
    ErrorCode,
    NotFoundError,
    RepositoryError,
    StorageError,
    ValidationError,
)
from gym_manager.domain.models.class_registration import (
    ClassRegistration,
    ClassSession,
    ReceiptUpload,
    RegistrationRequest,
)
from gym_manager.domain.ports.class_registration_repository import ClassRegistrationRepository
from gym_manager.domain.ports.receipt_storage import ReceiptStorage

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


class RegisterForClassUseCase:
    """
    Admisión de una inscripción a una clase: datos obligatorios, existencia de
    la clase, horario y cupo, en ese orden. El primer control que falla corta
    el flujo.
    """
    def __init__(
        self,
        registration_repo: ClassRegistrationRepository,
        receipt_storage: Optional[ReceiptStorage] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_receipt_size_mb: int = config.MAX_RECEIPT_SIZE_MB,
    ):
        self.registration_repo = registration_repo
        self.receipt_storage = receipt_storage
        self.clock = clock
        self.max_receipt_size_mb = max_receipt_size_mb

    def _validate_receipt(self, receipt: ReceiptUpload) -> None:
        if receipt.size > self.max_receipt_size_mb * 1024 * 1024:
            raise ValidationError(
                ErrorCode.INVALID_RECEIPT,
                f"El comprobante supera el tamaño máximo de {self.max_receipt_size_mb} MB.",
            )
        content_type = receipt.content_type or ""
        if not content_type.startswith("image/") and content_type != "application/pdf":
            raise ValidationError(
                ErrorCode.INVALID_RECEIPT,
                "El comprobante debe ser un archivo de imagen o un PDF válido.",
            )

    @staticmethod
    def session_start(session: ClassSession) -> Optional[datetime]:
        """Fecha y hora de inicio de la clase, o None si no se puede interpretar."""
        raw = f"{session.date}T{session.start_time}"
        if len(raw) == 16:
            raw = f"{raw}:00"
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None

    def _has_started(self, session: ClassSession) -> bool:
        start = self.session_start(session)
        if start is None:
            logger.warning(
                f"[gym={session.gym_id} session={session.id}] No se pudo interpretar la fecha y hora de la clase "
                f"({session.date!r}, {session.start_time!r}). Se omite el control de horario."
            )
            return False
        now = self.clock()
        if start.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone()
        elif start.tzinfo is None and now.tzinfo is not None:
            now = now.astimezone().replace(tzinfo=None)
        return start <= now

    def _store_receipt(self, receipt: ReceiptUpload, gym_id: str, session_id: str) -> Tuple[str, str]:
        extension = os.path.splitext(receipt.filename or "")[1]
        if not extension:
            extension = ".pdf" if receipt.content_type == "application/pdf" else ".jpg"
        storage_path = f"{gym_id}/{session_id}/{uuid.uuid4()}{extension}"
        try:
            receipt_url = self.receipt_storage.upload(
                storage_path, receipt.content, receipt.content_type or "application/octet-stream"
            )
        except StorageError as e:
            logger.error(f"[gym={gym_id} session={session_id}] Error guardando el comprobante: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No se pudo guardar el comprobante. Intenta nuevamente en unos segundos.",
            ) from e
        return receipt_url, storage_path

    def execute(self, request: RegistrationRequest, receipt: Optional[ReceiptUpload] = None) -> ClassRegistration:
        session_id = _clean(request.session_id)
        gym_id = _clean(request.gym_id)
        full_name = _clean(request.full_name)
        email = _clean(request.email) or None
        phone = _clean(request.phone) or None

        if not session_id or not gym_id or not full_name:
            raise ValidationError(
                ErrorCode.MISSING_REGISTRATION_DATA,
                "Faltan datos obligatorios para registrar la clase. Verifica la información ingresada.",
            )

        if receipt is not None and receipt.size == 0:
            receipt = None
        if receipt is not None:
            self._validate_receipt(receipt)

        log_prefix = f"[gym={gym_id} session={session_id}]"

        # Sin atomicidad garantizada: en motores que ignoran FOR UPDATE dos
        # inscripciones simultáneas al último lugar pueden pasar ambas el control de cupo.
        try:
            session = self.registration_repo.find_session(session_id, gym_id, lock=True)
        except RepositoryError as e:
            logger.error(f"{log_prefix} Error obteniendo la clase: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No se pudo verificar la información de la clase. Intenta nuevamente.",
            ) from e

        if session is None:
            logger.info(f"{log_prefix} Clase inexistente.")
            raise NotFoundError(ErrorCode.CLASS_NOT_FOUND, "La clase seleccionada no está disponible.")

        if receipt is not None and not session.accept_receipts:
            receipt = None

        if self._has_started(session):
            logger.info(f"{log_prefix} Inscripción rechazada: la clase ya inició.")
            raise ConflictError(
                ErrorCode.CLASS_ALREADY_STARTED,
                "Usted no se ha podido anotar a esta clase, la misma ya ha iniciado.",
            )

        try:
            registrations_count = self.registration_repo.count_registrations(session_id, gym_id)
        except RepositoryError as e:
            logger.error(f"{log_prefix} Error contando inscripciones: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No pudimos verificar la disponibilidad de la clase. Intenta nuevamente en unos segundos.",
            ) from e

        if registrations_count >= session.capacity:
            logger.info(f"{log_prefix} Inscripción rechazada: cupo completo ({registrations_count}/{session.capacity}).")
            raise ConflictError(ErrorCode.CLASS_FULL, "Esta clase ya alcanzó su cupo máximo.")

        receipt_url, receipt_storage_path = None, None
        if receipt is not None and self.receipt_storage is not None:
            receipt_url, receipt_storage_path = self._store_receipt(receipt, gym_id, session_id)

        try:
            return self.registration_repo.add_registration({
                "session_id": session_id,
                "gym_id": gym_id,
                "full_name": full_name,
                "email": email,
                "phone": phone,
                "receipt_url": receipt_url,
                "receipt_storage_path": receipt_storage_path,
            })
        except RepositoryError as e:
            logger.error(f"{log_prefix} Error insertando la inscripción: {e}", exc_info=True)
            if receipt_storage_path:
                self.receipt_storage.remove([receipt_storage_path])
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No pudimos registrar tu lugar. Intenta nuevamente en unos segundos.",
            ) from e
