"""Tests de integración de emisión, listado y descarga de facturas."""
import base64
from datetime import datetime
from unittest.mock import MagicMock

import pytest
import requests
from fastapi import status

from gym_manager.domain.errors import RepositoryError
from gym_manager.domain.ports.invoice_repository import InvoiceRepository
from gym_manager.domain.services.billing_credentials import BillingDefaults
from gym_manager.infrastructure.api import dependencies
from gym_manager.infrastructure.persistence.models import Factura

from conftest import PROD_ENDPOINT, TEST_ENDPOINT

INVOICES_URL = "/api/v1/invoices"
PDF_BYTES = b"%PDF-1.4\n" + b"0" * 60
ACCEPTED = {"status": "Procesado", "numeroCFE": "1234", "serieCFE": "A", "idCFE": "cfe-77"}


def _issue_body(gym_id, **invoice_overrides):
    invoice = {"lineas": "1<col/>Cuota mensual<col/>1500,,"}
    invoice.update(invoice_overrides)
    return {
        "gymId": gym_id,
        "paymentId": "pay-1",
        "memberId": "member-1",
        "memberName": "Ana Pérez",
        "amount": 1500,
        "invoice": invoice,
    }


class TestIssueInvoiceValidation:
    """Rechazos previos a la llamada a FacturaLive"""

    def test_blank_lines_rejected_without_calling_provider(self, client, billing_provider, seed_gym):
        gym = seed_gym()

        response = client.post(INVOICES_URL, json=_issue_body(gym.id, lineas="  ,, "))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "MISSING_INVOICE_LINES"
        billing_provider.submit_invoice.assert_not_called()

    def test_issue_date_with_time_is_rejected(self, client, db_session, billing_provider, seed_gym):
        gym = seed_gym()

        response = client.post(INVOICES_URL, json=_issue_body(gym.id, fechafacturacion="2025-05-01T10:00:00-03:00"))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["code"] == "INVALID_INVOICE_DATE"
        assert data["field"] == "fechafacturacion"
        billing_provider.submit_invoice.assert_not_called()
        assert db_session.query(Factura).count() == 0

    def test_malformed_due_date_is_rejected(self, client, billing_provider, seed_gym):
        gym = seed_gym()

        response = client.post(INVOICES_URL, json=_issue_body(gym.id, fechavencimiento="31/05/2025"))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["field"] == "fechavencimiento"
        billing_provider.submit_invoice.assert_not_called()

    def test_missing_amount(self, client, billing_provider, seed_gym):
        gym = seed_gym()
        body = _issue_body(gym.id)
        del body["amount"]

        response = client.post(INVOICES_URL, json=body)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "MISSING_INVOICE_DATA"

    def test_non_numeric_amount(self, client, billing_provider, seed_gym):
        gym = seed_gym()

        response = client.post(INVOICES_URL, json={**_issue_body(gym.id), "amount": "1500"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "INVALID_REQUEST"
        billing_provider.submit_invoice.assert_not_called()

    def test_missing_password_is_named(self, client, billing_provider, seed_gym):
        gym = seed_gym(invoice_password=None)

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["code"] == "MISSING_CREDENTIALS"
        assert data["missing"] == ["password"]
        billing_provider.submit_invoice.assert_not_called()

    def test_e_factura_without_rut(self, client, billing_provider, seed_gym):
        gym = seed_gym()

        response = client.post(INVOICES_URL, json=_issue_body(gym.id, typecfe=101))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "CFE_INCONSISTENCY"
        assert "hint" in response.json()
        billing_provider.submit_invoice.assert_not_called()


class TestIssueInvoice:
    """Emisión con FacturaLive simulado"""

    def test_success_stores_invoice(self, client, db_session, billing_provider, provider_reply, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.return_value = provider_reply(ACCEPTED)

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["endpoint"] == TEST_ENDPOINT
        assert data["reusedExistingInvoice"] is False
        assert data["externalResponse"]["parsed"] == ACCEPTED
        invoice = data["invoice"]
        assert invoice["invoice_number"] == "1234"
        assert invoice["invoice_series"] == "A"
        assert invoice["external_invoice_id"] == "cfe-77"
        assert invoice["status"] == "Procesado"
        assert invoice["currency"] == "UYU"
        assert invoice["typecfe"] == 111
        assert invoice["request_payload"]["password"] == "<hidden>"
        assert invoice["request_payload"]["endpoint"] == TEST_ENDPOINT

        endpoint, payload = billing_provider.submit_invoice.call_args.args
        assert endpoint == TEST_ENDPOINT
        assert payload["password"] == "secreto"
        assert payload["lineas"] == "1</col/>Cuota mensual</col/>1500"
        assert payload["nomneg"] == "Ana Pérez"
        assert db_session.query(Factura).count() == 1

    def test_series_falls_back_to_payload(self, client, billing_provider, provider_reply, seed_gym):
        gym = seed_gym(invoice_series="B")
        billing_provider.submit_invoice.return_value = provider_reply({"status": "ok", "numeroCFE": "9"})

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.json()["invoice"]["invoice_series"] == "B"

    def test_production_environment_uses_production_endpoint(self, client, billing_provider, provider_reply, seed_gym):
        gym = seed_gym(invoice_environment="produccion")
        billing_provider.submit_invoice.return_value = provider_reply(ACCEPTED)

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.json()["endpoint"] == PROD_ENDPOINT
        billing_provider.endpoint_for.assert_called_once_with("PROD")

    def test_non_json_success_body_is_stored_raw(self, client, billing_provider, provider_reply, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.return_value = provider_reply("Factura recibida")

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["rawResponse"] == "Factura recibida"
        assert data["invoice"]["status"] == "procesado"
        assert "parsed" not in data["invoice"]["response_payload"]

    def test_duplicate_payment_updates_existing_invoice(
        self, client, db_session, billing_provider, provider_reply, seed_gym, seed_invoice
    ):
        gym = seed_gym()
        existing = seed_invoice(gym.id, payment_id="pay-1", invoice_number=None)
        billing_provider.submit_invoice.return_value = provider_reply(ACCEPTED)

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["reusedExistingInvoice"] is True
        assert data["invoice"]["id"] == existing.id
        assert data["invoice"]["invoice_number"] == "1234"
        assert db_session.query(Factura).count() == 1

    def test_gym_without_row_is_invoiced_and_stored_with_process_defaults(
        self, app, client, db_session, billing_provider, provider_reply
    ):
        app.dependency_overrides[dependencies.get_billing_defaults] = lambda: BillingDefaults(
            user_id="10", company_id="20", branch_code="1", branch_id="2", password="secreto"
        )
        billing_provider.submit_invoice.return_value = provider_reply(ACCEPTED)

        response = client.post(INVOICES_URL, json=_issue_body("gym-sin-fila"))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["reusedExistingInvoice"] is False
        assert data["invoice"]["gym_id"] == "gym-sin-fila"
        stored = db_session.query(Factura).one()
        assert stored.payment_id == "pay-1"
        assert stored.invoice_number == "1234"

    def test_valid_dates_are_stored(self, client, billing_provider, provider_reply, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.return_value = provider_reply(ACCEPTED)

        response = client.post(
            INVOICES_URL,
            json=_issue_body(gym.id, fechafacturacion="2000-01-15", fechavencimiento="2000-02-15"),
        )

        invoice = response.json()["invoice"]
        assert invoice["issued_at"] == "2000-01-15"
        assert invoice["due_date"] == "2000-02-15"
        _, payload = billing_provider.submit_invoice.call_args.args
        assert payload["fechafacturacion"] == "2000-01-15"
        assert payload["fechavencimiento"] == "2000-02-15"


class TestIssueInvoiceProviderFailures:
    """Fallas de FacturaLive o de la red"""

    def test_http_error_is_upstream_error(self, client, billing_provider, provider_reply, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.return_value = provider_reply("Internal error", status_code=500)

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        data = response.json()
        assert data["code"] == "PROVIDER_ERROR"
        assert data["rawResponse"] == "Internal error"

    def test_network_error(self, client, billing_provider, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.side_effect = requests.exceptions.ConnectionError("sin conexión")

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_502_BAD_GATEWAY

    def test_rejected_status_reports_provider_messages(self, client, db_session, billing_provider, provider_reply, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.return_value = provider_reply({"status": "Rechazado", "mensaje": "RUT inválido"})

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error"] == "RUT inválido"
        assert db_session.query(Factura).count() == 0

    def test_empty_body_is_upstream_error(self, client, billing_provider, seed_gym):
        from gym_manager.domain.models.invoice import ProviderReply

        gym = seed_gym()
        billing_provider.submit_invoice.return_value = ProviderReply(status_code=200, text="", content=b"\x00\x00")

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_502_BAD_GATEWAY

    def test_latin1_body_is_recovered(self, client, billing_provider, seed_gym):
        from gym_manager.domain.models.invoice import ProviderReply

        gym = seed_gym()
        billing_provider.submit_invoice.return_value = ProviderReply(
            status_code=200, text="", content='{"status": "Procesado"}'.encode("latin-1")
        )

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["invoice"]["status"] == "Procesado"

    def test_issued_but_not_saved(self, app, client, billing_provider, provider_reply, seed_gym):
        gym = seed_gym()
        billing_provider.submit_invoice.return_value = provider_reply(ACCEPTED)
        failing_repo = MagicMock(spec=InvoiceRepository)
        failing_repo.save_invoice.side_effect = RepositoryError("conexión perdida")
        app.dependency_overrides[dependencies.get_invoice_repository] = lambda: failing_repo

        response = client.post(INVOICES_URL, json=_issue_body(gym.id))

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        data = response.json()
        assert data["code"] == "INVOICE_NOT_SAVED"
        assert data["externalResponse"]["parsed"] == ACCEPTED
        assert data["endpoint"] == TEST_ENDPOINT


class TestListInvoices:
    """GET /api/v1/invoices?gym_id="""

    def test_lists_newest_first_with_resolved_numbers(self, client, seed_gym, seed_invoice):
        gym = seed_gym()
        seed_invoice(gym.id, payment_id="pay-old", invoice_number="10", created_at=datetime(2025, 1, 1))
        seed_invoice(
            gym.id,
            payment_id="pay-new",
            invoice_number=None,
            response_payload={"raw": "{}", "parsed": {"facturaId": "987"}},
            created_at=datetime(2025, 2, 1),
        )
        other_gym = seed_gym(name="Otro")
        seed_invoice(other_gym.id, payment_id="pay-x")

        response = client.get(INVOICES_URL, params={"gym_id": gym.id})

        assert response.status_code == status.HTTP_200_OK
        invoices = response.json()["invoices"]
        assert [invoice["payment_id"] for invoice in invoices] == ["pay-new", "pay-old"]
        assert [invoice["invoice_number"] for invoice in invoices] == ["987", "10"]

    def test_gym_is_required(self, client):
        response = client.get(INVOICES_URL)

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestInvoicePdf:
    """GET /api/v1/invoices/{id}/pdf"""

    def test_inline_base64_pdf(self, client, document_fetcher, seed_gym, seed_invoice):
        gym = seed_gym()
        invoice = seed_invoice(
            gym.id,
            invoice_number="123#456",
            invoice_series="A/B",
            response_payload={"parsed": {"data": {"archivoPdfBase64": base64.b64encode(PDF_BYTES).decode()}}},
        )

        response = client.get(f"{INVOICES_URL}/{invoice.id}/pdf")

        assert response.status_code == status.HTTP_200_OK
        assert response.content == PDF_BYTES
        assert response.headers["content-type"] == "application/pdf"
        expected_name = f"A_B-123_456-{invoice.id}.pdf"
        assert response.headers["content-disposition"] == f'attachment; filename="{expected_name}"'
        assert response.headers["x-invoice-filename"] == expected_name
        assert response.headers["cache-control"] == "no-store"
        document_fetcher.fetch.assert_not_called()

    def test_remote_pdf_is_downloaded(self, client, document_fetcher, seed_gym, seed_invoice):
        gym = seed_gym()
        invoice = seed_invoice(gym.id, response_payload={"parsed": {"pdfUrl": "https://facturalive.test/doc/1.pdf"}})
        document_fetcher.fetch.return_value = PDF_BYTES

        response = client.get(f"{INVOICES_URL}/{invoice.id}/pdf")

        assert response.status_code == status.HTTP_200_OK
        assert response.content == PDF_BYTES
        document_fetcher.fetch.assert_called_once_with("https://facturalive.test/doc/1.pdf")

    def test_remote_failure_is_upstream_error(self, client, document_fetcher, seed_gym, seed_invoice):
        gym = seed_gym()
        invoice = seed_invoice(gym.id, response_payload={"parsed": {"pdfUrl": "https://facturalive.test/doc/1.pdf"}})
        document_fetcher.fetch.return_value = None

        response = client.get(f"{INVOICES_URL}/{invoice.id}/pdf")

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["code"] == "PDF_DOWNLOAD_FAILED"

    @pytest.mark.parametrize("response_payload", [None, {"raw": "ok", "parsed": {"status": "procesado"}}])
    def test_pdf_not_available(self, client, seed_gym, seed_invoice, response_payload):
        gym = seed_gym()
        invoice = seed_invoice(gym.id, response_payload=response_payload)

        response = client.get(f"{INVOICES_URL}/{invoice.id}/pdf")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "PDF_NOT_AVAILABLE"

    def test_unknown_invoice(self, client):
        response = client.get(f"{INVOICES_URL}/no-existe/pdf")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "INVOICE_NOT_FOUND"
