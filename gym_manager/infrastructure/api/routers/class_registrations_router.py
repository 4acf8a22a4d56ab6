# gym_manager/infrastructure/api/routers/class_registrations_router.py
from typing import Optional, Tuple

from fastapi import APIRouter, Depends

from gym_manager.application.use_cases.register_for_class import RegisterForClassUseCase
from gym_manager.domain.models.class_registration import ReceiptUpload, RegistrationRequest
from gym_manager.domain.ports.class_registration_repository import ClassRegistrationRepository
from gym_manager.domain.ports.receipt_storage import ReceiptStorage
from gym_manager.infrastructure.api.dependencies import (
    get_receipt_storage,
    get_registration_repository,
    read_registration_form,
)

router = APIRouter(prefix="/api/v1/class-registrations", tags=["Inscripciones"])


@router.post("", summary="Inscribir a una persona en una clase")
def create_registration(
    form: Tuple[RegistrationRequest, Optional[ReceiptUpload]] = Depends(read_registration_form),
    registration_repo: ClassRegistrationRepository = Depends(get_registration_repository),
    receipt_storage: ReceiptStorage = Depends(get_receipt_storage),
):
    """
    Valida horario y cupo de la clase y, si hay lugar, guarda la inscripción.
    Acepta JSON o multipart con el comprobante de pago en el campo `receipt`.
    """
    registration_request, receipt = form
    use_case = RegisterForClassUseCase(registration_repo, receipt_storage)
    registration = use_case.execute(registration_request, receipt)
    return {"registration": registration.model_dump(mode="json")}
