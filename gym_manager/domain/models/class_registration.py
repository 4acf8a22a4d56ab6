# gym_manager/domain/models/class_registration.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClassSession(BaseModel):
    """
    Clase programada de un gimnasio. La crea y modifica otro módulo; acá solo
    se lee. `date` y `start_time` se guardan como texto tal cual llegan.
    """
    id: str
    gym_id: str
    title: str
    capacity: int = Field(ge=0)
    date: Optional[str] = None
    start_time: Optional[str] = None
    accept_receipts: bool = False

    model_config = ConfigDict(from_attributes=True)


class ClassRegistration(BaseModel):
    id: str
    session_id: str
    gym_id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    receipt_url: Optional[str] = None
    receipt_storage_path: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RegistrationRequest(BaseModel):
    """Datos crudos del formulario público de inscripción."""
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    gym_id: Optional[str] = Field(default=None, alias="gymId")
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ReceiptUpload(BaseModel):
    """Comprobante de pago adjunto a una inscripción."""
    filename: Optional[str] = None
    content_type: Optional[str] = None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)
