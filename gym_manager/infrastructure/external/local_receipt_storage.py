# gym_manager/infrastructure/external/local_receipt_storage.py
import logging
import os
from typing import List, Optional

import config
from gym_manager.domain.errors import StorageError
from gym_manager.domain.ports.receipt_storage import ReceiptStorage

logger = logging.getLogger(__name__)


class LocalReceiptStorage(ReceiptStorage):
    """
    Guarda los comprobantes de inscripción en disco, bajo `RECEIPTS_DIR`, y
    los expone con `RECEIPTS_PUBLIC_BASE_URL` como prefijo.
    """
    def __init__(self, base_dir: Optional[str] = None, public_base_url: Optional[str] = None):
        self.base_dir = base_dir or config.RECEIPTS_DIR
        self.public_base_url = (public_base_url or config.RECEIPTS_PUBLIC_BASE_URL).rstrip("/")

    def _full_path(self, storage_path: str) -> str:
        full_path = os.path.abspath(os.path.join(self.base_dir, storage_path))
        if not full_path.startswith(os.path.abspath(self.base_dir) + os.sep):
            raise StorageError(f"Ruta de comprobante inválida: {storage_path}")
        return full_path

    def upload(self, storage_path: str, content: bytes, content_type: str) -> str:
        full_path = self._full_path(storage_path)
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            # "xb": nunca sobrescribir un comprobante existente
            with open(full_path, "xb") as buffer:
                buffer.write(content)
        except OSError as e:
            raise StorageError(f"No se pudo guardar el comprobante {storage_path}") from e

        logger.info(f"Comprobante guardado en {full_path} ({content_type}, {len(content)} bytes).")
        return f"{self.public_base_url}/{storage_path}"

    def remove(self, storage_paths: List[str]) -> None:
        for storage_path in storage_paths:
            try:
                os.remove(self._full_path(storage_path))
            except (OSError, StorageError) as e:
                logger.error(f"No se pudo eliminar el comprobante {storage_path}: {e}")
