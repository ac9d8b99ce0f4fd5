"""
Configuración común de pruebas: SQLite en memoria, directorio temporal de
facturas y helpers para crear datos.
"""
import os
import sys
import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path

# Agregar directorio raíz al PYTHONPATH para imports
sys.path.insert(0, str(Path(__file__).parent.parent))

_TMP = tempfile.mkdtemp(prefix="reservas_tests_")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FACTURAS_DIR"] = os.path.join(_TMP, "facturas")
os.environ["LOG_FILE"] = os.path.join(_TMP, "reservas_logs.txt")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "clave-de-pruebas"
os.environ["TRUST_GATEWAY_HEADERS"] = "true"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_pruebas"

import pytest
from fastapi.testclient import TestClient

import models  # noqa: F401
from database.conexion import Base, SessionLocal, engine
from models.area import AreaComun
from schemas.auth import UsuarioToken
from services.factura_service import FacturaService
from services.reserva_service import ReservaService

HEADERS_USUARIO = {"x-user-id": "7", "x-user-name": "Ana Perez", "x-user-role": "USER_CASUAL", "x-user-email": "ana@mail.com"}
HEADERS_OTRO = {"x-user-id": "8", "x-user-name": "Luis Rojas", "x-user-role": "USER_CASUAL"}
HEADERS_ADMIN = {"x-user-id": "1", "x-user-name": "Admin", "x-user-role": "ADMIN"}
HEADERS_SUPER = {"x-user-id": "2", "x-user-name": "Root", "x-user-role": "SUPER_USER"}

USUARIO = UsuarioToken(id="7", nombre="Ana Perez", rol="USER_CASUAL", email="ana@mail.com")
OTRO_USUARIO = UsuarioToken(id="8", nombre="Luis Rojas", rol="USER_CASUAL")
SUPER_USUARIO = UsuarioToken(id="2", nombre="Root", rol="SUPER_USER")


@pytest.fixture(autouse=True)
def base_limpia():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def renderer_original():
    """Restaura el renderer si una prueba lo reemplaza"""
    renderer = FacturaService.renderer
    yield
    FacturaService.renderer = renderer


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from main import app
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def area(db):
    area = AreaComun(nombre="Salón de eventos", descripcion="Planta baja", capacidad=40, costo_hora=Decimal("50.00"))
    db.add(area)
    db.commit()
    db.refresh(area)
    return area


@pytest.fixture
def reserva_creada(db, area):
    """(reserva, confirmacion, pago) de 10:00 a 12:00 sobre el área de 50/h"""
    return ReservaService.crear(
        db, area.id, datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 12, 0), USUARIO
    )


def crear_reserva(db, area_id, hora_inicio, hora_fin, usuario=USUARIO, dia=1):
    return ReservaService.crear(
        db, area_id, datetime(2024, 1, dia, hora_inicio, 0), datetime(2024, 1, dia, hora_fin, 0), usuario
    )
