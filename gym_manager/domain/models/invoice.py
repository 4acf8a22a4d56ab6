# gym_manager/domain/models/invoice.py
from pydantic import BaseModel, Field, ConfigDict, StrictFloat, StrictInt
from typing import Any, Dict, Optional, Union
from datetime import datetime


class Invoice(BaseModel):
    """
    Factura electrónica emitida a través de FacturaLive y registrada en la
    base de datos. Guarda el payload enviado y la respuesta recibida tal cual
    para poder auditar la emisión. Utiliza la sintaxis de Pydantic V2.
    """
    id: str
    gym_id: str
    payment_id: str
    member_id: Optional[str] = None
    member_name: Optional[str] = None
    total: float
    currency: str
    status: str = "procesado"
    invoice_number: Optional[str] = None
    invoice_series: Optional[str] = None
    external_invoice_id: Optional[str] = None
    environment: Optional[str] = None
    typecfe: Optional[int] = None
    issued_at: Optional[str] = None
    due_date: Optional[str] = None

    # --- Auditoría de la llamada al proveedor ---
    request_payload: Dict[str, str] = Field(default_factory=dict)
    response_payload: Any = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True,  # Permite leer directamente desde las filas del ORM
    )


class InvoiceIssueRequest(BaseModel):
    """Pedido de emisión tal como lo envía el panel de pagos."""
    gym_id: Optional[str] = Field(default=None, alias="gymId")
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    member_id: Optional[str] = Field(default=None, alias="memberId")
    member_name: Optional[str] = Field(default=None, alias="memberName")
    amount: Optional[Union[StrictInt, StrictFloat]] = None
    invoice: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)


class IssuedInvoice(BaseModel):
    """Resultado de una emisión exitosa."""
    invoice: Invoice
    external_response: Any = None
    raw_response: str
    endpoint: str
    reused_existing_invoice: bool = False


class GymBillingConfig(BaseModel):
    """Columnas `invoice_*` de la tabla gyms. Todas opcionales."""
    invoice_user_id: Optional[Any] = None
    invoice_company_id: Optional[Any] = None
    invoice_branch_code: Optional[Any] = None
    invoice_branch_id: Optional[Any] = None
    invoice_password: Optional[Any] = None
    invoice_environment: Optional[Any] = None
    invoice_customer_id: Optional[Any] = None
    invoice_series: Optional[Any] = None
    invoice_currency: Optional[Any] = None
    invoice_cotizacion: Optional[Any] = None
    invoice_typecfe: Optional[Any] = None
    invoice_tipo_traslado: Optional[Any] = None
    invoice_payment_type: Optional[Any] = None
    invoice_rutneg: Optional[Any] = None
    invoice_dirneg: Optional[Any] = None
    invoice_cityneg: Optional[Any] = None
    invoice_stateneg: Optional[Any] = None
    invoice_addinfoneg: Optional[Any] = None
    invoice_facturaext: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)


class PublicGymProfile(BaseModel):
    id: str
    name: Optional[str] = None
    logo_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProviderReply(BaseModel):
    """Respuesta HTTP cruda del proveedor de facturación."""
    status_code: int
    text: str = ""
    content: bytes = b""
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
