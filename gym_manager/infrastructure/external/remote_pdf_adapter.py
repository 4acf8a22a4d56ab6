# gym_manager/infrastructure/external/remote_pdf_adapter.py
import logging
from typing import Optional

import requests

from gym_manager.domain.ports.document_fetcher import DocumentFetcher

logger = logging.getLogger(__name__)


class RemotePdfAdapter(DocumentFetcher):
    """Descarga el PDF de una factura cuando el proveedor lo entrega como enlace."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def fetch(self, url: str) -> Optional[bytes]:
        try:
            response = requests.get(url, headers={"Cache-Control": "no-store"}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error descargando el PDF remoto {url}: {e}")
            return None

        if not response.ok:
            logger.error(f"El PDF remoto respondió con status {response.status_code}: {url}")
            return None
        return response.content
