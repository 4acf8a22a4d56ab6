# gym_manager/infrastructure/persistence/class_registration_repository_adapter.py
import logging
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gym_manager.domain.errors import RepositoryError
from gym_manager.domain.models.class_registration import ClassRegistration, ClassSession
from gym_manager.domain.ports.class_registration_repository import ClassRegistrationRepository
from .models import InscripcionClase, SesionClase

logger = logging.getLogger(__name__)


class SQLAlchemyClassRegistrationRepository(ClassRegistrationRepository):
    def __init__(self, db: Session):
        self.db = db

    def find_session(self, session_id: str, gym_id: str, lock: bool = False) -> Optional[ClassSession]:
        """
        Con `lock=True` emite SELECT ... FOR UPDATE: en PostgreSQL la fila de la
        clase queda bloqueada hasta el commit de `add_registration`, lo que
        serializa las inscripciones concurrentes a la misma clase. SQLite ignora
        FOR UPDATE, así que ahí el control de cupo sigue siendo best-effort.
        """
        try:
            query = self.db.query(SesionClase).filter(SesionClase.id == session_id, SesionClase.gym_id == gym_id)
            if lock:
                query = query.with_for_update()
            row = query.first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Error buscando la clase {session_id}") from e
        return ClassSession.model_validate(row) if row else None

    def count_registrations(self, session_id: str, gym_id: str) -> int:
        try:
            count = (
                self.db.query(func.count(InscripcionClase.id))
                .filter(InscripcionClase.session_id == session_id, InscripcionClase.gym_id == gym_id)
                .scalar()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Error contando inscripciones de la clase {session_id}") from e
        return count or 0

    def add_registration(self, registration: Dict[str, Any]) -> ClassRegistration:
        db_registration = InscripcionClase(**registration)
        try:
            self.db.add(db_registration)
            self.db.commit()
            self.db.refresh(db_registration)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError("Error insertando la inscripción") from e
        logger.info(f"[gym={db_registration.gym_id} session={db_registration.session_id}] Inscripción {db_registration.id} guardada.")
        return ClassRegistration.model_validate(db_registration)
