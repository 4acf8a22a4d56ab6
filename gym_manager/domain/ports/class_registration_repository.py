# gym_manager/domain/ports/class_registration_repository.py
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from gym_manager.domain.models.class_registration import ClassRegistration, ClassSession


class ClassRegistrationRepository(ABC):
    """
    Contrato de persistencia para la admisión de inscripciones.
    Las implementaciones lanzan `RepositoryError` ante cualquier falla del almacén.
    """

    @abstractmethod
    def find_session(self, session_id: str, gym_id: str, lock: bool = False) -> Optional[ClassSession]:
        """
        Busca la clase por (id, gimnasio). Con `lock=True` la fila queda
        bloqueada hasta el próximo commit, si el motor lo soporta.
        """
        pass

    @abstractmethod
    def count_registrations(self, session_id: str, gym_id: str) -> int:
        """Cantidad exacta de inscripciones de la clase."""
        pass

    @abstractmethod
    def add_registration(self, registration: Dict[str, Any]) -> ClassRegistration:
        """Inserta la inscripción, confirma la transacción y retorna la fila creada."""
        pass
