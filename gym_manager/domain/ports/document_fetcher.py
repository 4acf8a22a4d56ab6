# gym_manager/domain/ports/document_fetcher.py
from abc import ABC, abstractmethod
from typing import Optional


class DocumentFetcher(ABC):
    """Puerto para descargar documentos remotos (PDF de facturas)."""

    @abstractmethod
    def fetch(self, url: str) -> Optional[bytes]:
        """Retorna el cuerpo binario, o None ante un status de error o una falla de red."""
        pass
