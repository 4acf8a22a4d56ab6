# gym_manager/infrastructure/persistence/models.py
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Gimnasio(Base):
    __tablename__ = "gyms"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255))
    logo_url = Column(String(500))

    # --- Configuración de facturación electrónica (FacturaLive) ---
    invoice_user_id = Column(String(50))
    invoice_company_id = Column(String(50))
    invoice_branch_code = Column(String(50))
    invoice_branch_id = Column(String(50))
    invoice_password = Column(String(255))
    invoice_environment = Column(String(20))
    invoice_customer_id = Column(Integer)
    invoice_series = Column(String(20))
    invoice_currency = Column(String(10))
    invoice_cotizacion = Column(Float)
    invoice_typecfe = Column(Integer)
    invoice_tipo_traslado = Column(Integer)
    invoice_payment_type = Column(Integer)
    invoice_rutneg = Column(String(20))
    invoice_dirneg = Column(String(255))
    invoice_cityneg = Column(String(100))
    invoice_stateneg = Column(String(100))
    invoice_addinfoneg = Column(Text)
    invoice_facturaext = Column(String(100))

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SesionClase(Base):
    __tablename__ = "class_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    gym_id = Column(String(36), ForeignKey("gyms.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)
    # Texto tal cual lo carga el panel ("2025-03-10", "19:30")
    date = Column(String(20))
    start_time = Column(String(20))
    price = Column(Float)
    notes = Column(Text)
    accept_receipts = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class InscripcionClase(Base):
    __tablename__ = "class_registrations"

    id = Column(String(36), primary_key=True, default=_uuid)
    session_id = Column(String(36), ForeignKey("class_sessions.id"), nullable=False, index=True)
    gym_id = Column(String(36), ForeignKey("gyms.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(50))
    receipt_url = Column(String(500))
    receipt_storage_path = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Factura(Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("gym_id", "payment_id", name="uq_invoices_gym_payment"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    # Sin FK a gyms: un gimnasio sin fila factura con las credenciales por defecto
    gym_id = Column(String(255), nullable=False, index=True)
    payment_id = Column(String(255), nullable=False)
    member_id = Column(String(255))
    member_name = Column(Text)
    total = Column(Float, nullable=False)
    # Valores que llegan del panel o de FacturaLive, sin largo conocido
    currency = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="procesado")
    invoice_number = Column(Text)
    invoice_series = Column(Text)
    external_invoice_id = Column(Text)
    environment = Column(String(10))
    typecfe = Column(Integer)
    issued_at = Column(String(10))
    due_date = Column(String(10))
    request_payload = Column(JSON, nullable=False)
    response_payload = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
