# gym_manager/application/use_cases/list_gym_invoices.py
import logging
from typing import List

from gym_manager.domain.errors import DependencyError, ErrorCode, RepositoryError, ValidationError
from gym_manager.domain.models.invoice import Invoice
from gym_manager.domain.ports.invoice_repository import InvoiceRepository
from gym_manager.domain.services.invoice_response import resolve_invoice_number

logger = logging.getLogger(__name__)


class ListGymInvoicesUseCase:
    """Facturas de un gimnasio, con el número resuelto aunque FacturaLive no lo haya informado."""
    def __init__(self, invoice_repo: InvoiceRepository):
        self.invoice_repo = invoice_repo

    def execute(self, gym_id: str) -> List[Invoice]:
        gym_id = (gym_id or "").strip()
        if not gym_id:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Debes indicar el gimnasio.")

        try:
            invoices = self.invoice_repo.list_by_gym(gym_id)
        except RepositoryError as e:
            logger.error(f"[gym={gym_id}] Error listando facturas: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No pudimos obtener las facturas. Intenta nuevamente en unos segundos.",
            ) from e

        return [
            invoice.model_copy(update={
                "invoice_number": resolve_invoice_number(
                    invoice.invoice_number, invoice.response_payload, invoice.external_invoice_id
                )
            })
            for invoice in invoices
        ]
