# gym_manager/domain/ports/billing_provider.py
from abc import ABC, abstractmethod
from typing import Dict, Optional

from gym_manager.domain.models.invoice import ProviderReply


class BillingProvider(ABC):
    """Puerto para la emisión de comprobantes con el servicio de facturación electrónica."""

    @abstractmethod
    def endpoint_for(self, environment: Optional[str]) -> str:
        """URL a la que se envía la factura según el ambiente (TEST / PROD)."""
        pass

    @abstractmethod
    def submit_invoice(self, endpoint: str, payload: Dict[str, str]) -> ProviderReply:
        """
        Envía el payload como formulario en un único intento, sin reintentos.
        Lanza `requests.RequestException` (o equivalente) si no hubo respuesta HTTP.
        """
        pass
