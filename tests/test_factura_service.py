"""
Pruebas del servicio de facturas: numeración correlativa, idempotencia por
pago y recuperación cuando falla el PDF.
"""
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest

from models.factura import EstadoFactura, Factura
from repositories.facturas import FacturaRepositorio
from services.factura_service import FacturaService
from conftest import OTRO_USUARIO, USUARIO, crear_reserva
from utils.errors import ConflictoError, NoEncontradoError, ServicioExternoError, ValidacionError
from utils.factura_pdf import ReportLabRenderer
from utils.fiscal import hash_archivo


class RendererRoto:
    def render(self, documento, destino):
        raise ServicioExternoError("pdf", "renderer caído")


class TestEmision:

    def test_factura_completa(self, db, reserva_creada):
        _, _, pago = reserva_creada

        factura = FacturaService.generar_automatica(db, pago.id)

        assert factura.numero_factura == "FAC-00000001"
        assert factura.estado == EstadoFactura.ENVIADA
        assert factura.total == Decimal("100.00")
        assert factura.subtotal == Decimal("100.00")
        assert factura.moneda == "BOB"
        assert len(factura.codigo_control) == 16
        assert factura.qr_fiscal.startswith("data:image/png;base64,")
        assert "FAC-00000001" in factura.url_verificacion
        assert Path(factura.ruta_pdf).is_file()
        assert factura.hash_archivo == hash_archivo(factura.ruta_pdf)
        assert factura.fecha_limite_emision.year == factura.fecha_emision.year + 1

    def test_numeracion_correlativa(self, db, area):
        numeros = []
        for hora in (8, 10, 12):
            _, _, pago = crear_reserva(db, area.id, hora, hora + 1)
            numeros.append(FacturaService.generar_automatica(db, pago.id).numero_factura)

        assert numeros == ["FAC-00000001", "FAC-00000002", "FAC-00000003"]

    def test_idempotente_por_pago(self, db, reserva_creada):
        _, _, pago = reserva_creada

        primera = FacturaService.generar_automatica(db, pago.id)
        segunda = FacturaService.generar(db, pago.id, {"nombre": "Otro"}, None)

        assert segunda.id == primera.id
        assert segunda.numero_factura == primera.numero_factura
        assert db.query(Factura).count() == 1

    def test_datos_cliente_y_empresa(self, db, reserva_creada):
        _, _, pago = reserva_creada

        factura = FacturaService.generar(
            db, pago.id,
            {"nombre": "Empresa Cliente", "documento": "556677", "email": None},
            {"nombre": "Sucursal Sur", "nit": "9988776655"},
            usuario="admin",
        )

        assert factura.cliente_nombre == "Empresa Cliente"
        assert factura.cliente_documento == "556677"
        assert factura.empresa_nombre == "Sucursal Sur"
        assert factura.nit == "9988776655"
        assert factura.usuario == "admin"

    def test_pago_inexistente(self, db):
        with pytest.raises(NoEncontradoError):
            FacturaService.generar_automatica(db, 999)
        assert db.query(Factura).count() == 0


class TestNumeracionConcurrente:

    def test_reintenta_con_el_siguiente_numero(self, db, area):
        _, _, pago_a = crear_reserva(db, area.id, 8, 9)
        _, _, pago_b = crear_reserva(db, area.id, 10, 11)
        FacturaService.generar_automatica(db, pago_a.id)

        # Lectura desactualizada: el primer intento choca con FAC-00000001
        with patch.object(FacturaRepositorio, "ultimo_numero", side_effect=[None, "FAC-00000001"]):
            factura = FacturaService.generar_automatica(db, pago_b.id)

        assert factura.numero_factura == "FAC-00000002"
        assert db.query(Factura).count() == 2

    def test_se_rinde_tras_varios_choques(self, db, area):
        _, _, pago_a = crear_reserva(db, area.id, 8, 9)
        _, _, pago_b = crear_reserva(db, area.id, 10, 11)
        FacturaService.generar_automatica(db, pago_a.id)

        with patch.object(FacturaRepositorio, "ultimo_numero", return_value=None):
            with pytest.raises(ConflictoError):
                FacturaService.generar_automatica(db, pago_b.id)

        assert db.query(Factura).count() == 1

    def test_numero_almacenado_invalido(self, db, area):
        _, _, pago_a = crear_reserva(db, area.id, 8, 9)
        _, _, pago_b = crear_reserva(db, area.id, 10, 11)
        factura = FacturaService.generar_automatica(db, pago_a.id)
        factura.numero_factura = "BASURA"
        db.commit()

        with pytest.raises(ValidacionError):
            FacturaService.generar_automatica(db, pago_b.id)
        assert db.query(Factura).count() == 1


class TestFallaDelPDF:

    def test_falla_deja_la_factura_generada_y_se_retoma(self, db, reserva_creada):
        _, _, pago = reserva_creada
        FacturaService.renderer = RendererRoto()

        with pytest.raises(ServicioExternoError):
            FacturaService.generar_automatica(db, pago.id)

        pendiente = FacturaService.por_pago(db, pago.id)
        assert pendiente.estado == EstadoFactura.GENERADA
        assert pendiente.ruta_pdf is None

        FacturaService.renderer = ReportLabRenderer()
        retomada = FacturaService.generar_automatica(db, pago.id)

        assert retomada.id == pendiente.id
        assert retomada.numero_factura == pendiente.numero_factura
        assert retomada.estado == EstadoFactura.ENVIADA
        assert Path(retomada.ruta_pdf).is_file()
        assert db.query(Factura).count() == 1


class TestRegeneracion:

    def test_personaliza_con_el_usuario(self, db, reserva_creada):
        _, _, pago = reserva_creada
        factura = FacturaService.generar_automatica(db, pago.id)
        ruta_anterior = factura.ruta_pdf

        regenerada = FacturaService.regenerar_con_usuario(db, factura.id, USUARIO)

        assert regenerada.cliente_nombre == "Ana Perez"
        assert regenerada.cliente_email == "ana@mail.com"
        assert regenerada.cliente_documento == "7"
        assert regenerada.cliente_complemento == "USER_CASUAL"
        assert regenerada.numero_factura == factura.numero_factura
        assert regenerada.ruta_pdf != ruta_anterior
        assert Path(regenerada.ruta_pdf).is_file()
        assert not Path(ruta_anterior).exists()

    def test_sin_usuario_vuelve_al_cliente_general(self, db, reserva_creada):
        _, _, pago = reserva_creada
        factura = FacturaService.generar_automatica(db, pago.id)
        FacturaService.regenerar_con_usuario(db, factura.id, USUARIO)

        regenerada = FacturaService.regenerar_con_usuario(db, factura.id, None)

        assert regenerada.cliente_nombre == "Cliente General"
        assert regenerada.cliente_email == "cliente@citylights.com"
        assert regenerada.cliente_documento == "0000000"
        assert regenerada.cliente_complemento is None

    def test_datos_faltantes_no_heredan_la_descarga_anterior(self, db, reserva_creada):
        _, _, pago = reserva_creada
        factura = FacturaService.generar_automatica(db, pago.id)
        FacturaService.regenerar_con_usuario(db, factura.id, USUARIO)

        regenerada = FacturaService.regenerar_con_usuario(db, factura.id, OTRO_USUARIO)

        assert regenerada.cliente_nombre == "Luis Rojas"
        assert regenerada.cliente_documento == "8"
        assert regenerada.cliente_email != "ana@mail.com"
        assert regenerada.cliente_email == "cliente@citylights.com"

    def test_factura_inexistente(self, db):
        with pytest.raises(NoEncontradoError):
            FacturaService.regenerar_pdf(db, 42)


class TestArchivos:

    def test_ruta_archivo_rechaza_rutas(self):
        with pytest.raises(ValidacionError):
            FacturaService.ruta_archivo("../config.py")
        with pytest.raises(ValidacionError):
            FacturaService.ruta_archivo("factura.txt")

    def test_ruta_archivo_inexistente(self):
        with pytest.raises(NoEncontradoError):
            FacturaService.ruta_archivo("no_existe.pdf")

    def test_listado_de_pdfs(self, db, reserva_creada):
        _, _, pago = reserva_creada
        factura = FacturaService.generar_automatica(db, pago.id)

        nombres = [a["nombre"] for a in FacturaService.listar_archivos_pdf()]

        assert Path(factura.ruta_pdf).name in nombres
        assert FacturaService.ruta_archivo(Path(factura.ruta_pdf).name).is_file()
