# gym_manager/domain/ports/gym_repository.py
from abc import ABC, abstractmethod
from typing import Optional

from gym_manager.domain.models.invoice import GymBillingConfig, PublicGymProfile


class GymRepository(ABC):
    """Lectura de los datos del gimnasio (tenant)."""

    @abstractmethod
    def find_billing_config(self, gym_id: str) -> Optional[GymBillingConfig]:
        """Columnas de facturación del gimnasio, o None si no existe la fila."""
        pass

    @abstractmethod
    def find_public_profile(self, gym_id: str) -> Optional[PublicGymProfile]:
        pass
