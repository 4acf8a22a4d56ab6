"""
Configuración compartida de pytest: base SQLite en memoria, app con
dependencias reemplazadas y helpers para sembrar datos.
"""
import os
import tempfile

# database.py exige DATABASE_URL al importarse
os.environ.setdefault("DATABASE_URL", "sqlite://")
# main.py monta este directorio al importarse
os.environ.setdefault("RECEIPTS_DIR", tempfile.mkdtemp(prefix="class-receipts-"))

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gym_manager.domain.models.invoice import ProviderReply
from gym_manager.domain.ports.billing_provider import BillingProvider
from gym_manager.domain.ports.document_fetcher import DocumentFetcher
from gym_manager.domain.ports.receipt_storage import ReceiptStorage
from gym_manager.domain.services.billing_credentials import BillingDefaults
from gym_manager.infrastructure.api import dependencies
from gym_manager.infrastructure.persistence.database import Base, get_db
from gym_manager.infrastructure.persistence.models import Factura, Gimnasio, SesionClase
from main import app as fastapi_app

TEST_ENDPOINT = "https://facturalive.test/envia-factura_test.php"
PROD_ENDPOINT = "https://facturalive.test/envia-factura.php"

GYM_CREDENTIALS = {
    "invoice_user_id": "10",
    "invoice_company_id": "20",
    "invoice_branch_code": "1",
    "invoice_branch_id": "2",
    "invoice_password": "secreto",
}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite no aplica las claves foráneas salvo que se pida, como hace PostgreSQL
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def billing_provider():
    provider = MagicMock(spec=BillingProvider)
    provider.endpoint_for.side_effect = lambda environment: PROD_ENDPOINT if environment == "PROD" else TEST_ENDPOINT
    return provider


@pytest.fixture
def document_fetcher():
    return MagicMock(spec=DocumentFetcher)


@pytest.fixture
def receipt_storage():
    storage = MagicMock(spec=ReceiptStorage)
    storage.upload.side_effect = lambda storage_path, content, content_type: f"/receipts/{storage_path}"
    return storage


@pytest.fixture
def billing_defaults():
    return BillingDefaults(environment="TEST")


@pytest.fixture
def app(db_session, billing_provider, document_fetcher, receipt_storage, billing_defaults):
    """App de FastAPI con la base en memoria y los adaptadores externos simulados."""
    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[dependencies.get_billing_provider] = lambda: billing_provider
    fastapi_app.dependency_overrides[dependencies.get_document_fetcher] = lambda: document_fetcher
    fastapi_app.dependency_overrides[dependencies.get_receipt_storage] = lambda: receipt_storage
    fastapi_app.dependency_overrides[dependencies.get_billing_defaults] = lambda: billing_defaults
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def provider_reply():
    """Fábrica de respuestas simuladas de FacturaLive; `body` puede ser un dict (JSON) o texto."""
    def _reply(body, status_code=200) -> ProviderReply:
        text = body if isinstance(body, str) else json.dumps(body)
        return ProviderReply(status_code=status_code, text=text, content=text.encode("utf-8"))
    return _reply


@pytest.fixture
def seed_gym(db_session):
    def _seed(**overrides):
        values = {"name": "Iron Gym", "logo_url": "https://cdn.test/logo.png", **GYM_CREDENTIALS}
        values.update(overrides)
        gym = Gimnasio(**values)
        db_session.add(gym)
        db_session.commit()
        db_session.refresh(gym)
        return gym
    return _seed


@pytest.fixture
def seed_session(db_session):
    def _seed(gym_id, **overrides):
        values = {
            "gym_id": gym_id,
            "title": "Funcional",
            "capacity": 10,
            "date": "2999-01-01",
            "start_time": "10:00",
            "accept_receipts": False,
        }
        values.update(overrides)
        session = SesionClase(**values)
        db_session.add(session)
        db_session.commit()
        db_session.refresh(session)
        return session
    return _seed


@pytest.fixture
def seed_invoice(db_session):
    def _seed(gym_id, **overrides):
        values = {
            "gym_id": gym_id,
            "payment_id": "pay-1",
            "total": 1500,
            "currency": "UYU",
            "status": "procesado",
            "request_payload": {"lineas": "1</col/>Cuota</col/>1500"},
            "response_payload": None,
        }
        values.update(overrides)
        invoice = Factura(**values)
        db_session.add(invoice)
        db_session.commit()
        db_session.refresh(invoice)
        return invoice
    return _seed
