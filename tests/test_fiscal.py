import base64
import hashlib
from datetime import datetime
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from utils.errors import ValidacionError
from utils.fiscal import (
    LEYENDA_DESARROLLO,
    LEYENDA_LEY_453,
    construir_texto_qr,
    construir_url_verificacion,
    formatear_monto,
    generar_codigo_control,
    generar_qr_data_url,
    generar_qr_png,
    hash_archivo,
    obtener_leyenda,
    qr_data_url_a_png,
    siguiente_numero,
)

PNG_FIRMA = b"\x89PNG\r\n\x1a\n"


class TestNumeracion:

    def test_primer_numero(self):
        assert siguiente_numero(None) == "FAC-00000001"

    def test_incrementa(self):
        assert siguiente_numero("FAC-00000041") == "FAC-00000042"

    def test_mas_de_ocho_digitos(self):
        assert siguiente_numero("FAC-99999999") == "FAC-100000000"

    def test_prefijo_personalizado(self):
        assert siguiente_numero("REC-00000009", prefijo="REC") == "REC-00000010"

    @pytest.mark.parametrize("invalido", ["FAC-", "FACTURA-1", "00000001", "FAC-12a"])
    def test_numero_malformado(self, invalido):
        with pytest.raises(ValidacionError):
            siguiente_numero(invalido)


class TestCodigoControl:

    def test_deterministico(self):
        fecha = datetime(2024, 3, 15, 10, 30)
        base = f"FAC-00000001123456789020240315{10050:012d}"
        esperado = hashlib.sha256(base.encode()).hexdigest()[:16].upper()

        codigo = generar_codigo_control("FAC-00000001", "1234567890", fecha, Decimal("100.50"))

        assert codigo == esperado
        assert len(codigo) == 16
        assert codigo == codigo.upper()

    def test_cambia_con_el_monto(self):
        fecha = datetime(2024, 3, 15)
        a = generar_codigo_control("FAC-00000001", "1", fecha, 100)
        b = generar_codigo_control("FAC-00000001", "1", fecha, 101)
        assert a != b


class TestLeyendaYUrl:

    def test_leyenda_montos_altos(self):
        assert obtener_leyenda(Decimal("50000.01")) == LEYENDA_DESARROLLO

    def test_leyenda_en_el_umbral(self):
        assert obtener_leyenda(Decimal("50000.00")) == LEYENDA_LEY_453

    def test_url_verificacion(self):
        url = construir_url_verificacion("1234567890", "ABCDEF", "FAC-00000001")
        params = parse_qs(urlparse(url).query)
        assert params["nit"] == ["1234567890"]
        assert params["cuf"] == ["ABCDEF"]
        assert params["numero"] == ["FAC-00000001"]
        assert params["t"] == ["2"]


class TestQR:

    def test_texto_qr(self):
        texto = construir_texto_qr(
            "1234567890", "FAC-00000007", "AUT-1", datetime(2024, 1, 2, 23, 0), 100, "ABC"
        )
        assert texto == "1234567890|FAC-00000007|AUT-1|2024-01-02|100.00|ABC"

    def test_formatear_monto(self):
        assert formatear_monto(Decimal("5")) == "5.00"
        assert formatear_monto("10.005") == "10.01"

    def test_png_redimensionado(self):
        png = generar_qr_png("hola", ancho=200)
        assert png.startswith(PNG_FIRMA)
        # ancho en el chunk IHDR
        assert int.from_bytes(png[16:20], "big") == 200

    def test_data_url(self):
        data_url = generar_qr_data_url("hola")
        assert data_url.startswith("data:image/png;base64,")
        assert qr_data_url_a_png(data_url) == base64.b64decode(data_url.split(",", 1)[1])


def test_hash_archivo(tmp_path):
    archivo = tmp_path / "a.bin"
    archivo.write_bytes(b"contenido")
    assert hash_archivo(archivo) == hashlib.sha256(b"contenido").hexdigest()
