# gym_manager/application/use_cases/get_public_gym.py
import logging

from gym_manager.domain.errors import DependencyError, ErrorCode, NotFoundError, RepositoryError, ValidationError
from gym_manager.domain.models.invoice import PublicGymProfile
from gym_manager.domain.ports.gym_repository import GymRepository

logger = logging.getLogger(__name__)


def _blank_to_none(value):
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class GetPublicGymUseCase:
    def __init__(self, gym_repo: GymRepository):
        self.gym_repo = gym_repo

    def execute(self, gym_id: str) -> PublicGymProfile:
        gym_id = (gym_id or "").strip()
        if not gym_id:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Debes indicar el gimnasio.")

        try:
            profile = self.gym_repo.find_public_profile(gym_id)
        except RepositoryError as e:
            logger.error(f"[gym={gym_id}] Error obteniendo el gimnasio: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No pudimos obtener los datos del gimnasio. Intenta nuevamente.",
            ) from e

        if profile is None:
            raise NotFoundError(ErrorCode.GYM_NOT_FOUND, "No encontramos el gimnasio solicitado.")

        return PublicGymProfile(
            id=profile.id,
            name=_blank_to_none(profile.name),
            logo_url=_blank_to_none(profile.logo_url),
        )
