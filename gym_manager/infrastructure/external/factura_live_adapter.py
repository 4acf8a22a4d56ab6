# gym_manager/infrastructure/external/factura_live_adapter.py
import logging
from typing import Dict, Optional

import requests

import config
from gym_manager.domain.models.invoice import ProviderReply
from gym_manager.domain.ports.billing_provider import BillingProvider

logger = logging.getLogger(__name__)


class FacturaLiveAdapter(BillingProvider):
    """
    Adaptador para la API de FacturaLive. Envía el comprobante como formulario
    en un único intento; los reintentos quedan a cargo de quien opera el panel.
    """
    def __init__(
        self,
        test_endpoint: Optional[str] = None,
        prod_endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.test_endpoint = test_endpoint or config.FACTURA_LIVE_TEST_ENDPOINT
        self.prod_endpoint = prod_endpoint or config.FACTURA_LIVE_PROD_ENDPOINT
        self.timeout = timeout if timeout is not None else config.FACTURA_LIVE_TIMEOUT

    def endpoint_for(self, environment: Optional[str]) -> str:
        return self.prod_endpoint if environment == "PROD" else self.test_endpoint

    def submit_invoice(self, endpoint: str, payload: Dict[str, str]) -> ProviderReply:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "Accept": "application/json, text/plain, */*",
            "User-Agent": config.FACTURA_LIVE_USER_AGENT,
        }
        logger.info(f"Enviando factura a FacturaLive ({endpoint}), {len(payload)} campos.")
        try:
            response = requests.post(endpoint, data=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"ERROR de red al contactar FacturaLive ({endpoint}): {e}")
            raise

        logger.info(f"FacturaLive respondió HTTP {response.status_code} ({len(response.content)} bytes).")
        return ProviderReply(
            status_code=response.status_code,
            text=response.text,
            content=response.content,
            headers=dict(response.headers),
        )
