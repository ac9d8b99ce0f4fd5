"""
Renderizado de la factura en PDF (A4) con ReportLab.

El renderer recibe un DocumentoFactura ya calculado (números, código de
control, QR, literal) y solo se ocupa de la maquetación y de escribir el
archivo de forma atómica.
"""
import io
import os
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, Protocol
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

from utils.errors import ArchivoError, ServicioExternoError
from utils.fiscal import formatear_monto, qr_data_url_a_png
from utils.logging_utils import log_event

MORADO = colors.HexColor("#4A2FCC")
NARANJA = colors.HexColor("#FF7A2D")
AMARILLO = colors.HexColor("#FFC623")
GRIS_TEXTO = colors.HexColor("#4B5563")
GRIS_FONDO = colors.HexColor("#F3F4F6")

PDF_TAMANO_MINIMO = 100


@dataclass
class DocumentoFactura:
    numero_factura: str
    nit: str
    razon_social: str
    numero_autorizacion: str
    codigo_control: str
    fecha_emision: datetime
    fecha_limite_emision: datetime

    empresa_nombre: str
    empresa_nit: str
    empresa_direccion: Optional[str]
    empresa_telefono: Optional[str]
    empresa_email: Optional[str]
    sucursal: str
    municipio: Optional[str]
    actividad_economica: Optional[str]

    cliente_nombre: str
    cliente_email: Optional[str]
    cliente_documento: Optional[str]
    cliente_complemento: Optional[str]

    descripcion: str
    subtotal: Decimal
    descuento: Decimal
    total: Decimal
    moneda: str
    literal: str
    leyenda: str
    url_verificacion: Optional[str]
    qr_fiscal: Optional[str]


class DocumentRenderer(Protocol):
    def render(self, documento: DocumentoFactura, destino: Path) -> Path:
        ...


def _recortar(texto: str, fuente: str, tamano: float, ancho_max: float) -> str:
    """Acorta el texto con '...' para que no invada otras columnas"""
    texto = " ".join((texto or "").split())
    if stringWidth(texto, fuente, tamano) <= ancho_max:
        return texto
    while texto and stringWidth(texto + "...", fuente, tamano) > ancho_max:
        texto = texto[:-1]
    return texto + "..."


class ReportLabRenderer:
    """Dibujo vectorial directo sobre el canvas, tamaño A4"""

    def __init__(self):
        self.ancho, self.alto = A4
        self.margen = 40

    def render(self, documento: DocumentoFactura, destino: Path) -> Path:
        for campo in ("empresa_nombre", "cliente_nombre", "total"):
            if getattr(documento, campo) in (None, ""):
                raise ServicioExternoError("pdf", f"Campo requerido para el PDF ausente: {campo}")

        destino = Path(destino)
        try:
            destino.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchivoError(f"No se pudo crear el directorio {destino.parent}: {e}")

        fd, temporal = tempfile.mkstemp(dir=destino.parent, suffix=".tmp")
        os.close(fd)
        try:
            c = canvas.Canvas(temporal, pagesize=A4)
            c.setTitle(f"Factura {documento.numero_factura}")
            c.setAuthor(documento.empresa_nombre)
            self._dibujar(c, documento)
            c.showPage()
            c.save()
            os.replace(temporal, destino)
        except OSError as e:
            raise ArchivoError(f"No se pudo escribir el PDF {destino}: {e}")
        except (ArchivoError, ServicioExternoError):
            raise
        except Exception as e:
            log_event("facturas", "sistema", "Error renderizando PDF", f"numero={documento.numero_factura} error={e}")
            raise ServicioExternoError("pdf", f"Error al generar el PDF: {e}")
        finally:
            if os.path.exists(temporal):
                os.remove(temporal)

        verificar_pdf(destino)
        return destino

    # ========== SECCIONES ==========

    def _dibujar(self, c: canvas.Canvas, doc: DocumentoFactura) -> None:
        y = self._encabezado(c, doc)
        y = self._datos_fiscales(c, doc, y - 20)
        y = self._datos_cliente(c, doc, y - 16)
        y = self._detalle(c, doc, y - 20)
        self._totales_y_qr(c, doc, y - 16)
        self._pie(c, doc)

    def _encabezado(self, c: canvas.Canvas, doc: DocumentoFactura) -> float:
        alto_banda = 120
        base = self.alto - alto_banda
        c.setFillColor(MORADO)
        c.rect(0, base, self.ancho, alto_banda, stroke=0, fill=1)

        # Círculos decorativos
        c.setFillColor(NARANJA)
        c.circle(self.ancho - 70, self.alto - 20, 55, stroke=0, fill=1)
        c.setFillColor(AMARILLO)
        c.circle(self.ancho - 20, base + 25, 35, stroke=0, fill=1)

        x = self.margen
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 24)
        c.drawString(x, self.alto - 45, "CITYLIGHTS")
        c.setFont("Helvetica", 9)
        lineas = [
            doc.empresa_nombre,
            f"NIT: {doc.empresa_nit}",
            doc.empresa_direccion or "",
            f"Tel: {doc.empresa_telefono}" if doc.empresa_telefono else "",
        ]
        yl = self.alto - 62
        for linea in lineas:
            if linea:
                c.drawString(x, yl, _recortar(linea, "Helvetica", 9, 250))
                yl -= 12

        xd = self.ancho - 230
        c.setFont("Helvetica-Bold", 22)
        c.drawString(xd, self.alto - 45, "FACTURA")
        c.setFont("Helvetica", 10)
        c.drawString(xd, self.alto - 63, f"N° {doc.numero_factura}")
        c.drawString(xd, self.alto - 77, f"NIT: {doc.nit}")
        c.drawString(xd, self.alto - 91, f"Autorización: {doc.numero_autorizacion}")
        return base

    def _datos_fiscales(self, c: canvas.Canvas, doc: DocumentoFactura, y: float) -> float:
        c.setFillColor(GRIS_TEXTO)
        c.setFont("Helvetica", 9)
        c.drawString(self.margen, y, _recortar(doc.razon_social, "Helvetica", 9, 300))
        c.drawString(
            self.margen, y - 13,
            _recortar(f"{doc.sucursal} - {doc.municipio or ''}", "Helvetica", 9, 300),
        )
        if doc.actividad_economica:
            c.drawString(
                self.margen, y - 26,
                _recortar(f"Actividad: {doc.actividad_economica}", "Helvetica", 9, 300),
            )

        xd = self.ancho - 230
        c.setFillColor(colors.black)
        c.setFont("Helvetica-Bold", 9)
        c.drawString(xd, y, "Fecha de emisión:")
        c.drawString(xd, y - 13, "Fecha límite de emisión:")
        c.drawString(xd, y - 26, "Código de control:")
        c.setFont("Helvetica", 9)
        c.drawString(xd + 110, y, doc.fecha_emision.strftime("%d/%m/%Y %H:%M"))
        c.drawString(xd + 110, y - 13, doc.fecha_limite_emision.strftime("%d/%m/%Y"))
        c.drawString(xd + 110, y - 26, doc.codigo_control)
        return y - 36

    def _datos_cliente(self, c: canvas.Canvas, doc: DocumentoFactura, y: float) -> float:
        alto = 74
        ancho = self.ancho - 2 * self.margen
        c.setFillColor(GRIS_FONDO)
        c.roundRect(self.margen, y - alto, ancho, alto, 6, stroke=0, fill=1)

        x = self.margen + 12
        c.setFillColor(MORADO)
        c.setFont("Helvetica-Bold", 11)
        c.drawString(x, y - 16, "DATOS DEL CLIENTE")

        c.setFillColor(colors.black)
        documento = doc.cliente_documento or "-"
        if doc.cliente_complemento:
            documento = f"{documento} {doc.cliente_complemento}"
        filas = [
            ("Nombre / Razón social:", doc.cliente_nombre),
            ("NIT / CI:", documento),
            ("Email:", doc.cliente_email or "-"),
        ]
        yf = y - 34
        for etiqueta, valor in filas:
            c.setFont("Helvetica-Bold", 9)
            c.drawString(x, yf, etiqueta)
            c.setFont("Helvetica", 9)
            c.drawString(x + 120, yf, _recortar(valor, "Helvetica", 9, ancho - 260))
            yf -= 13

        c.setFont("Helvetica-Bold", 9)
        c.drawRightString(self.ancho - self.margen - 12, y - 34, "Estado: CANCELADO")
        c.drawRightString(
            self.ancho - self.margen - 12, y - 47,
            f"Monto: {formatear_monto(doc.total)} {doc.moneda}",
        )
        return y - alto

    def _detalle(self, c: canvas.Canvas, doc: DocumentoFactura, y: float) -> float:
        ancho = self.ancho - 2 * self.margen
        columnas = [
            ("DESCRIPCIÓN", self.margen + 8, "izq"),
            ("CANT.", self.margen + ancho * 0.55, "der"),
            ("PRECIO UNIT.", self.margen + ancho * 0.77, "der"),
            ("TOTAL", self.margen + ancho - 8, "der"),
        ]
        alto_fila = 22

        c.setFillColor(MORADO)
        c.rect(self.margen, y - alto_fila, ancho, alto_fila, stroke=0, fill=1)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 9)
        for titulo, x, alineacion in columnas:
            if alineacion == "izq":
                c.drawString(x, y - 15, titulo)
            else:
                c.drawRightString(x, y - 15, titulo)

        y -= alto_fila
        c.setStrokeColor(colors.lightgrey)
        c.rect(self.margen, y - alto_fila, ancho, alto_fila, stroke=1, fill=0)
        c.setFillColor(colors.black)
        c.setFont("Helvetica", 9)
        precio = formatear_monto(doc.subtotal)
        valores = [
            _recortar(doc.descripcion, "Helvetica", 9, ancho * 0.45),
            "1",
            precio,
            precio,
        ]
        for (titulo, x, alineacion), valor in zip(columnas, valores):
            if alineacion == "izq":
                c.drawString(x, y - 15, valor)
            else:
                c.drawRightString(x, y - 15, valor)
        return y - alto_fila

    def _totales_y_qr(self, c: canvas.Canvas, doc: DocumentoFactura, y: float) -> float:
        qr_lado = 120
        if doc.qr_fiscal:
            imagen = ImageReader(io.BytesIO(qr_data_url_a_png(doc.qr_fiscal)))
            c.drawImage(imagen, self.margen, y - qr_lado, width=qr_lado, height=qr_lado)
            c.setFont("Helvetica", 8)
            c.setFillColor(GRIS_TEXTO)
            c.drawCentredString(self.margen + qr_lado / 2, y - qr_lado - 12, "Código QR Fiscal")

        ancho_caja = 220
        x_caja = self.ancho - self.margen - ancho_caja
        alto_caja = 74
        c.setFillColor(GRIS_FONDO)
        c.roundRect(x_caja, y - alto_caja, ancho_caja, alto_caja, 6, stroke=0, fill=1)

        filas = [
            ("Subtotal:", formatear_monto(doc.subtotal), "Helvetica"),
            ("Descuento:", formatear_monto(doc.descuento), "Helvetica"),
            (f"TOTAL {doc.moneda}:", formatear_monto(doc.total), "Helvetica-Bold"),
        ]
        yf = y - 20
        for etiqueta, valor, fuente in filas:
            c.setFillColor(MORADO if fuente == "Helvetica-Bold" else colors.black)
            c.setFont(fuente, 11 if fuente == "Helvetica-Bold" else 9)
            c.drawString(x_caja + 12, yf, etiqueta)
            c.drawRightString(x_caja + ancho_caja - 12, yf, valor)
            yf -= 20

        estilo = ParagraphStyle("literal", fontName="Helvetica-Oblique", fontSize=9, leading=12)
        literal = Paragraph(f"Son: {escape(doc.literal)}", estilo)
        ancho_literal = ancho_caja + 60
        _, alto_literal = literal.wrap(ancho_literal, 60)
        literal.drawOn(c, self.ancho - self.margen - ancho_literal, y - alto_caja - 8 - alto_literal)
        return y - max(qr_lado + 16, alto_caja + 8 + alto_literal)

    def _pie(self, c: canvas.Canvas, doc: DocumentoFactura) -> None:
        ancho = self.ancho - 2 * self.margen
        y = 120
        c.setStrokeColor(MORADO)
        c.setLineWidth(1.5)
        c.line(self.margen, y, self.ancho - self.margen, y)

        estilo = ParagraphStyle("leyenda", fontName="Helvetica-Bold", fontSize=8, leading=10, alignment=1)
        leyenda = Paragraph(escape(doc.leyenda), estilo)
        _, alto = leyenda.wrap(ancho, 40)
        leyenda.drawOn(c, self.margen, y - 8 - alto)
        y -= 14 + alto

        if doc.url_verificacion:
            texto = f"Verificar en: {doc.url_verificacion}"
            c.setFont("Helvetica", 7)
            c.setFillColor(MORADO)
            texto = _recortar(texto, "Helvetica", 7, ancho)
            c.drawCentredString(self.ancho / 2, y - 10, texto)
            ancho_texto = stringWidth(texto, "Helvetica", 7)
            x0 = (self.ancho - ancho_texto) / 2
            c.linkURL(doc.url_verificacion, (x0, y - 13, x0 + ancho_texto, y - 2), relative=0)
            y -= 16

        c.setFillColor(GRIS_TEXTO)
        c.setFont("Helvetica", 7)
        c.drawCentredString(
            self.ancho / 2, 30,
            "Powered by CITYLIGHTS - Sistema de Gestión de Reservas",
        )


# ========== VERIFICACIÓN DE ARCHIVOS ==========

def verificar_pdf(ruta: Path) -> None:
    """
    Raises:
        ArchivoError: si el archivo no existe, está incompleto o no es un PDF
    """
    ruta = Path(ruta)
    if not ruta.is_file():
        raise ArchivoError(f"El archivo PDF no existe: {ruta}")
    if ruta.stat().st_size < PDF_TAMANO_MINIMO:
        raise ArchivoError(f"El archivo PDF está incompleto: {ruta}")
    with open(ruta, "rb") as archivo:
        if archivo.read(4) != b"%PDF":
            raise ArchivoError(f"El archivo no es un PDF válido: {ruta}")


def esperar_pdf(ruta: Path, intentos: int = 3, espera: float = 0.15) -> bool:
    """Comprueba que el PDF esté listo, con un número acotado de reintentos"""
    for intento in range(intentos):
        try:
            verificar_pdf(ruta)
            return True
        except ArchivoError:
            if intento < intentos - 1:
                time.sleep(espera)
    return False
