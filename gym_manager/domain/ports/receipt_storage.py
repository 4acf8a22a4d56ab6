# gym_manager/domain/ports/receipt_storage.py
from abc import ABC, abstractmethod
from typing import List


class ReceiptStorage(ABC):
    """Puerto para el almacenamiento de comprobantes de pago de las inscripciones."""

    @abstractmethod
    def upload(self, storage_path: str, content: bytes, content_type: str) -> str:
        """
        Guarda el archivo en la ruta indicada (sin sobrescribir).
        Retorna la URL pública del archivo. Lanza `StorageError` si falla.
        """
        pass

    @abstractmethod
    def remove(self, storage_paths: List[str]) -> None:
        pass
