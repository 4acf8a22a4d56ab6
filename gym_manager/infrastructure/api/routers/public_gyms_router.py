# gym_manager/infrastructure/api/routers/public_gyms_router.py
from fastapi import APIRouter, Depends

from gym_manager.application.use_cases.get_public_gym import GetPublicGymUseCase
from gym_manager.domain.ports.gym_repository import GymRepository
from gym_manager.infrastructure.api.dependencies import get_gym_repository

router = APIRouter(prefix="/api/v1/public-gyms", tags=["Gimnasios"])


@router.get("/{gym_id}", summary="Datos públicos del gimnasio (nombre y logo)")
def get_public_gym(gym_id: str, gym_repo: GymRepository = Depends(get_gym_repository)):
    profile = GetPublicGymUseCase(gym_repo).execute(gym_id)
    return {"data": {"id": profile.id, "name": profile.name, "logoUrl": profile.logo_url}}
