# gym_manager/domain/ports/invoice_repository.py
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from gym_manager.domain.models.invoice import Invoice


class InvoiceRepository(ABC):
    """Contrato de persistencia de facturas emitidas."""

    @abstractmethod
    def save_invoice(self, record: Dict[str, Any]) -> Invoice:
        """
        Inserta la factura y retorna la fila creada.
        Lanza `DuplicateInvoiceError` si ya existe una para el mismo (gimnasio, pago).
        """
        pass

    @abstractmethod
    def update_invoice_for_payment(self, gym_id: str, payment_id: str, record: Dict[str, Any]) -> Optional[Invoice]:
        """Sobrescribe la factura existente del pago. Retorna None si no existe."""
        pass

    @abstractmethod
    def find_by_id(self, invoice_id: str) -> Optional[Invoice]:
        pass

    @abstractmethod
    def list_by_gym(self, gym_id: str) -> List[Invoice]:
        """Facturas del gimnasio, de la más reciente a la más antigua."""
        pass
