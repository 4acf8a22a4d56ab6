# gym_manager/infrastructure/persistence/gym_repository_adapter.py
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gym_manager.domain.errors import RepositoryError
from gym_manager.domain.models.invoice import GymBillingConfig, PublicGymProfile
from gym_manager.domain.ports.gym_repository import GymRepository
from .models import Gimnasio


class SQLAlchemyGymRepository(GymRepository):
    def __init__(self, db: Session):
        self.db = db

    def _find(self, gym_id: str) -> Optional[Gimnasio]:
        try:
            return self.db.query(Gimnasio).filter(Gimnasio.id == gym_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Error buscando el gimnasio {gym_id}") from e

    def find_billing_config(self, gym_id: str) -> Optional[GymBillingConfig]:
        row = self._find(gym_id)
        return GymBillingConfig.model_validate(row) if row else None

    def find_public_profile(self, gym_id: str) -> Optional[PublicGymProfile]:
        row = self._find(gym_id)
        return PublicGymProfile.model_validate(row) if row else None
