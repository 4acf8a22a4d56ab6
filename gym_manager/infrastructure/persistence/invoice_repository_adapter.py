# gym_manager/infrastructure/persistence/invoice_repository_adapter.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gym_manager.domain.errors import DuplicateInvoiceError, RepositoryError
from gym_manager.domain.models.invoice import Invoice
from gym_manager.domain.ports.invoice_repository import InvoiceRepository
from .models import Factura

logger = logging.getLogger(__name__)


class SQLAlchemyInvoiceRepository(InvoiceRepository):
    def __init__(self, db: Session):
        self.db = db

    def _find_for_payment(self, gym_id: str, payment_id: str) -> Optional[Factura]:
        return (
            self.db.query(Factura)
            .filter(Factura.gym_id == gym_id, Factura.payment_id == payment_id)
            .first()
        )

    def save_invoice(self, record: Dict[str, Any]) -> Invoice:
        db_factura = Factura(**record)
        try:
            self.db.add(db_factura)
            self.db.commit()
            self.db.refresh(db_factura)
        except IntegrityError as e:
            self.db.rollback()
            # Solo la clave única (gym_id, payment_id) cuenta como duplicado
            try:
                existing = self._find_for_payment(record.get("gym_id"), record.get("payment_id"))
            except SQLAlchemyError as lookup_error:
                self.db.rollback()
                raise RepositoryError("Error verificando si la factura ya existía") from lookup_error
            if existing is None:
                logger.error(f"Restricción violada guardando la factura del pago {record.get('payment_id')}: {e.orig}")
                raise RepositoryError("Error de integridad guardando la factura") from e
            raise DuplicateInvoiceError(
                f"Ya existe una factura para el pago {record.get('payment_id')} del gimnasio {record.get('gym_id')}"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError("Error guardando la factura") from e
        return Invoice.model_validate(db_factura)

    def update_invoice_for_payment(self, gym_id: str, payment_id: str, record: Dict[str, Any]) -> Optional[Invoice]:
        try:
            db_factura = self._find_for_payment(gym_id, payment_id)
            if not db_factura:
                return None
            for field, value in record.items():
                setattr(db_factura, field, value)
            self.db.commit()
            self.db.refresh(db_factura)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Error actualizando la factura del pago {payment_id}") from e
        return Invoice.model_validate(db_factura)

    def find_by_id(self, invoice_id: str) -> Optional[Invoice]:
        """Busca una factura por su ID en la tabla 'invoices'."""
        try:
            row = self.db.query(Factura).filter(Factura.id == invoice_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Error buscando la factura {invoice_id}") from e
        return Invoice.model_validate(row) if row else None

    def list_by_gym(self, gym_id: str) -> List[Invoice]:
        try:
            rows = (
                self.db.query(Factura)
                .filter(Factura.gym_id == gym_id)
                .order_by(Factura.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Error listando las facturas del gimnasio {gym_id}") from e
        return [Invoice.model_validate(row) for row in rows]
