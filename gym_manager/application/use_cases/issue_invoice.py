# gym_manager/application/use_cases/issue_invoice.py
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict

import requests

from gym_manager.domain.errors import (
    DependencyError,
    DuplicateInvoiceError,
    ErrorCode,
    PartialSuccessError,
    RepositoryError,
    UpstreamError,
    ValidationError,
)
from gym_manager.domain.models.invoice import InvoiceIssueRequest, IssuedInvoice, ProviderReply
from gym_manager.domain.ports.billing_provider import BillingProvider
from gym_manager.domain.ports.gym_repository import GymRepository
from gym_manager.domain.ports.invoice_repository import InvoiceRepository
from gym_manager.domain.services.billing_credentials import (
    BillingDefaults,
    missing_credentials,
    resolve_credentials,
)
from gym_manager.domain.services.invoice_payload import (
    DEFAULT_CURRENCY,
    DEFAULT_TYPECFE,
    build_default_fields,
    build_factura_payload,
    enforce_cfe_consistency,
    is_finite_number,
    payload_for_storage,
    resolve_environment,
    resolve_issue_date,
    sanitize_invoice_lines,
    validate_invoice_date,
)
from gym_manager.domain.services.invoice_response import (
    EXTERNAL_ID_KEYS,
    INVOICE_NUMBER_KEYS,
    INVOICE_SERIES_KEYS,
    build_response_payload,
    extract_provider_messages,
    extract_status,
    first_text,
    is_successful_status,
    parse_provider_response,
)

logger = logging.getLogger(__name__)


def _utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class IssueInvoiceUseCase:
    """
    Orquesta la emisión de una factura electrónica: valida el pedido, resuelve
    las credenciales del gimnasio, arma el payload, llama a FacturaLive una
    sola vez y registra el resultado en la base de datos.
    """
    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        gym_repo: GymRepository,
        billing_provider: BillingProvider,
        defaults: BillingDefaults,
        today: Callable[[], str] = _utc_today,
    ):
        self.invoice_repo = invoice_repo
        self.gym_repo = gym_repo
        self.billing_provider = billing_provider
        self.defaults = defaults
        self.today = today

    @staticmethod
    def _response_text(reply: ProviderReply) -> str:
        """Texto de la respuesta; si llegó vacío se reintenta decodificar como Latin-1."""
        if reply.text and reply.text.strip():
            return reply.text
        if reply.content:
            latin1 = reply.content.decode("latin-1").replace("\x00", "")
            if latin1.strip():
                logger.warning("Cuerpo de FacturaLive recuperado con decodificación Latin-1.")
                return latin1
        return reply.text or ""

    def execute(self, request: InvoiceIssueRequest) -> IssuedInvoice:
        gym_id, payment_id, invoice = request.gym_id, request.payment_id, request.invoice
        amount = request.amount

        if not gym_id or not payment_id or invoice is None or amount is None or not math.isfinite(amount):
            logger.info(f"[gym={gym_id} payment={payment_id}] Solicitud rechazada por datos incompletos.")
            raise ValidationError(
                ErrorCode.MISSING_INVOICE_DATA,
                "Faltan datos obligatorios para emitir la factura. Verifica la información enviada.",
            )

        log_prefix = f"[gym={gym_id} payment={payment_id}]"

        lines = sanitize_invoice_lines(invoice.get("lineas"))
        if not lines:
            logger.info(f"{log_prefix} Solicitud rechazada: no se encontraron líneas de factura.")
            raise ValidationError(
                ErrorCode.MISSING_INVOICE_LINES,
                "No se encontraron ítems para la factura. Asegúrate de completar el detalle de líneas.",
            )

        try:
            requested_issue_date = validate_invoice_date("fechafacturacion", invoice.get("fechafacturacion"))
            due_date = validate_invoice_date("fechavencimiento", invoice.get("fechavencimiento"))
        except ValidationError as e:
            logger.info(f"{log_prefix} Solicitud rechazada: {e.message} (valor={e.details.get('value')!r})")
            raise

        # --- PASO 1: Credenciales del gimnasio ---
        try:
            gym_config = self.gym_repo.find_billing_config(gym_id)
        except RepositoryError as e:
            logger.error(f"{log_prefix} Error obteniendo la configuración de facturación: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No pudimos obtener las credenciales de facturación del gimnasio. Revisa la configuración e intenta nuevamente.",
            ) from e

        credentials = resolve_credentials(gym_config, self.defaults)
        missing = missing_credentials(credentials)
        if missing:
            logger.warning(f"{log_prefix} Faltan credenciales obligatorias: {', '.join(missing)}")
            raise ValidationError(
                ErrorCode.MISSING_CREDENTIALS,
                f"Faltan credenciales obligatorias ({', '.join(missing)}) para facturar este gimnasio. "
                "Completa la configuración del gimnasio, incluyendo la contraseña invoice_password.",
                {"missing": missing},
            )

        # --- PASO 2: Armado del payload ---
        today = self.today()
        issue_date = resolve_issue_date(requested_issue_date, today)
        environment = resolve_environment(invoice, credentials, self.defaults.environment)

        defaults = build_default_fields(
            invoice,
            credentials,
            payment_id=payment_id,
            member_name=request.member_name,
            lines=lines,
            issue_date=issue_date,
            due_date=due_date,
            environment=environment,
        )
        payload = build_factura_payload(invoice, defaults)
        enforce_cfe_consistency(payload)

        endpoint = self.billing_provider.endpoint_for(environment)
        stored_payload = payload_for_storage(payload, endpoint)
        logger.info(f"{log_prefix} Payload armado para FacturaLive ({environment}, typecfe={payload.get('typecfe')}).")

        # --- PASO 3: Llamada a FacturaLive (un único intento) ---
        try:
            reply = self.billing_provider.submit_invoice(endpoint, payload)
        except requests.exceptions.RequestException as e:
            logger.error(f"{log_prefix} No se pudo contactar a FacturaLive: {e}", exc_info=True)
            raise UpstreamError(
                ErrorCode.PROVIDER_ERROR,
                "No pudimos comunicarnos con el servicio de facturación. Intenta nuevamente en unos minutos.",
                {"endpoint": endpoint},
            ) from e

        raw_response = self._response_text(reply)
        if not raw_response.strip():
            logger.error(f"{log_prefix} FacturaLive respondió HTTP {reply.status_code} sin cuerpo.")
            raise UpstreamError(
                ErrorCode.PROVIDER_ERROR,
                "FacturaLive respondió sin cuerpo aunque confirmó la recepción HTTP. Esto suele ocurrir cuando "
                "las credenciales o el formato del payload fueron rechazados antes de generar el comprobante.",
                {"rawResponse": raw_response, "endpoint": endpoint},
            )

        parsed_response = parse_provider_response(raw_response)
        response_payload = build_response_payload(raw_response, parsed_response, endpoint)

        if not reply.ok:
            logger.error(f"{log_prefix} FacturaLive respondió con estado HTTP {reply.status_code}: {raw_response[:500]}")
            raise UpstreamError(
                ErrorCode.PROVIDER_ERROR,
                "El servicio de facturación devolvió un error. Intenta nuevamente en unos minutos.",
                {"rawResponse": raw_response, "endpoint": endpoint, "upstreamStatus": reply.status_code},
            )

        status = extract_status(parsed_response)
        if not is_successful_status(status):
            messages = extract_provider_messages(parsed_response)
            logger.error(f"{log_prefix} FacturaLive rechazó la factura (status={status!r}): {messages}")
            raise UpstreamError(
                ErrorCode.PROVIDER_ERROR,
                ". ".join(messages) if messages else "La factura fue rechazada por FacturaLive. Revisa los datos enviados.",
                {"rawResponse": raw_response, "externalResponse": response_payload, "endpoint": endpoint},
            )

        # --- PASO 4: Registro en la base de datos ---
        typecfe = invoice.get("typecfe")
        if not is_finite_number(typecfe):
            typecfe = credentials.typecfe if credentials.typecfe is not None else DEFAULT_TYPECFE

        invoice_record: Dict[str, Any] = {
            "gym_id": gym_id,
            "payment_id": payment_id,
            "member_id": request.member_id,
            "member_name": request.member_name or "",
            "total": amount,
            "currency": payload.get("moneda") or credentials.currency or DEFAULT_CURRENCY,
            "status": status,
            "invoice_number": first_text(parsed_response, INVOICE_NUMBER_KEYS),
            "invoice_series": first_text(parsed_response, INVOICE_SERIES_KEYS) or payload.get("seriereferencia"),
            "external_invoice_id": first_text(parsed_response, EXTERNAL_ID_KEYS),
            "environment": environment,
            "typecfe": int(typecfe),
            "issued_at": issue_date,
            "due_date": due_date,
            "request_payload": stored_payload,
            "response_payload": response_payload,
        }

        not_saved = {"rawResponse": raw_response, "externalResponse": response_payload, "endpoint": endpoint}
        reused_existing_invoice = False
        try:
            stored_invoice = self.invoice_repo.save_invoice(invoice_record)
        except DuplicateInvoiceError as e:
            logger.warning(f"{log_prefix} {e}. Se actualiza la factura existente.")
            stored_invoice = self._update_existing(invoice_record, not_saved, log_prefix)
            reused_existing_invoice = True
        except RepositoryError as e:
            logger.error(f"{log_prefix} La factura fue emitida pero no se pudo guardar: {e}", exc_info=True)
            raise self._not_saved_error(not_saved) from e

        logger.info(f"{log_prefix} Factura {stored_invoice.id} guardada (número={stored_invoice.invoice_number}).")
        return IssuedInvoice(
            invoice=stored_invoice,
            external_response=response_payload,
            raw_response=raw_response,
            endpoint=endpoint,
            reused_existing_invoice=reused_existing_invoice,
        )

    def _update_existing(self, invoice_record: Dict[str, Any], not_saved: Dict[str, Any], log_prefix: str):
        try:
            updated = self.invoice_repo.update_invoice_for_payment(
                invoice_record["gym_id"], invoice_record["payment_id"], invoice_record
            )
        except RepositoryError as e:
            logger.error(f"{log_prefix} Error actualizando la factura existente tras un duplicado: {e}", exc_info=True)
            raise self._not_saved_error(not_saved) from e
        if updated is None:
            logger.error(f"{log_prefix} No se encontró la factura duplicada para actualizar.")
            raise self._not_saved_error(not_saved)
        return updated

    @staticmethod
    def _not_saved_error(details: Dict[str, Any]) -> PartialSuccessError:
        return PartialSuccessError(
            ErrorCode.INVOICE_NOT_SAVED,
            "La factura fue emitida pero no pudo guardarse. Revisa la solapa de Facturas más tarde.",
            details,
        )
