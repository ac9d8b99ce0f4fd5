"""
Orquestación de facturas: numeración, código de control, QR, PDF y persistencia.

La emisión se hace en dos pasos:
1. Una sola transacción inserta la factura con número, código de control y
   QR (estado GENERADA). Un choque con el unique de numero_factura se
   reintenta con el siguiente número.
2. El PDF se renderiza fuera de esa transacción; al terminar se guarda la
   ruta y el hash y la factura pasa a ENVIADA. Si falla, la factura queda
   GENERADA sin archivo y una nueva llamada a generar() retoma este paso.
"""
import logging
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from models.factura import EstadoFactura, Factura
from models.pago import PagoReserva
from repositories.facturas import FacturaRepositorio
from repositories.pagos import PagoRepositorio
from schemas.auth import UsuarioToken
from utils.errors import ArchivoError, ConflictoError, NoEncontradoError, ValidacionError
from utils.factura_pdf import DocumentoFactura, DocumentRenderer, ReportLabRenderer
from utils.fiscal import (
    construir_texto_qr,
    construir_url_verificacion,
    generar_codigo_control,
    generar_qr_data_url,
    hash_archivo,
    obtener_leyenda,
    siguiente_numero,
)
from utils.literal import monto_a_literal
from utils.logging_utils import log_event
from utils.timezone import to_bolivia_time

MAX_INTENTOS_NUMERACION = 5


def _un_anio_despues(fecha: datetime) -> datetime:
    try:
        return fecha.replace(year=fecha.year + 1)
    except ValueError:
        # 29 de febrero
        return fecha + timedelta(days=365)


def _sin_vacios(datos: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (datos or {}).items() if v not in (None, "")}


def _descripcion(pago: PagoReserva) -> str:
    reserva = pago.reserva
    if reserva is None or reserva.area is None:
        return "Servicio de Reserva"
    inicio = to_bolivia_time(reserva.inicio)
    fin = to_bolivia_time(reserva.fin)
    return f"Reserva de {reserva.area.nombre} ({inicio:%d/%m/%Y %H:%M} - {fin:%H:%M})"


class FacturaService:
    """Servicio de emisión y consulta de facturas"""

    renderer: DocumentRenderer = ReportLabRenderer()

    # ========== EMISIÓN ==========

    @staticmethod
    def generar(
        db: Session,
        pago_id: int,
        datos_cliente: Optional[Dict[str, Any]] = None,
        datos_empresa: Optional[Dict[str, Any]] = None,
        usuario: str = "SISTEMA",
    ) -> Factura:
        """
        Emite la factura de un pago. Si el pago ya tiene factura la retorna
        (completando el PDF si había quedado pendiente) sin crear otra.

        Raises:
            NoEncontradoError: el pago no existe
            ValidacionError: el último número almacenado es inválido
            ServicioExternoError / ArchivoError: falla al renderizar el PDF
        """
        facturas = FacturaRepositorio(db)
        existente = facturas.por_pago(pago_id)
        if existente is None:
            pago = PagoRepositorio(db).obtener(pago_id)
            if pago is None:
                raise NoEncontradoError("Pago", pago_id)
            existente = FacturaService._insertar(db, pago, datos_cliente, datos_empresa, usuario)
            log_event("facturas", usuario, "Factura creada", f"numero={existente.numero_factura} pago={pago_id}")

        if existente.ruta_pdf and existente.estado == EstadoFactura.ENVIADA:
            return existente

        FacturaService._renderizar(db, existente)
        return facturas.obtener(existente.id)

    @staticmethod
    def generar_automatica(db: Session, pago_id: int) -> Factura:
        """Factura con el cliente genérico y los datos fiscales configurados"""
        return FacturaService.generar(db, pago_id, config.CLIENTE_GENERAL, config.EMPRESA)

    @staticmethod
    def _insertar(
        db: Session,
        pago: PagoReserva,
        datos_cliente: Optional[Dict[str, Any]],
        datos_empresa: Optional[Dict[str, Any]],
        usuario: str,
    ) -> Factura:
        cliente = {**config.CLIENTE_GENERAL, **_sin_vacios(datos_cliente)}
        empresa = {**config.EMPRESA, **_sin_vacios(datos_empresa)}
        repo = FacturaRepositorio(db)
        pago_id = pago.id
        monto = pago.monto

        for intento in range(1, MAX_INTENTOS_NUMERACION + 1):
            numero = siguiente_numero(repo.ultimo_numero(), config.FACTURA_PREFIJO)
            fecha_emision = datetime.utcnow().replace(microsecond=0)
            fecha_fiscal = to_bolivia_time(fecha_emision)
            codigo_control = generar_codigo_control(numero, empresa["nit"], fecha_fiscal, monto)
            # El QR se arma antes de insertar: si falla no queda ninguna fila
            qr_fiscal = generar_qr_data_url(
                construir_texto_qr(
                    empresa["nit"], numero, empresa["numero_autorizacion"],
                    fecha_fiscal, monto, codigo_control,
                )
            )

            factura = Factura(
                pago_reserva_id=pago_id,
                numero_factura=numero,
                nit=empresa["nit"],
                razon_social=empresa.get("razon_social") or empresa["nombre"],
                numero_autorizacion=empresa["numero_autorizacion"],
                codigo_control=codigo_control,
                fecha_emision=fecha_emision,
                fecha_limite_emision=_un_anio_despues(fecha_emision),
                cliente_nombre=cliente["nombre"],
                cliente_email=cliente.get("email"),
                cliente_documento=cliente.get("documento"),
                cliente_complemento=cliente.get("complemento"),
                empresa_nombre=empresa["nombre"],
                empresa_nit=empresa["nit"],
                empresa_direccion=empresa.get("direccion"),
                empresa_telefono=empresa.get("telefono"),
                empresa_email=empresa.get("email"),
                sucursal=empresa.get("sucursal") or "Casa Matriz",
                municipio=empresa.get("municipio"),
                actividad_economica=empresa.get("actividad_economica"),
                subtotal=monto,
                descuento=0,
                monto_gift_card=0,
                total=monto,
                moneda=config.FACTURA_MONEDA,
                tipo_cambio=1,
                leyenda=obtener_leyenda(monto),
                usuario=usuario,
                qr_fiscal=qr_fiscal,
                url_verificacion=construir_url_verificacion(empresa["nit"], codigo_control, numero),
                estado=EstadoFactura.GENERADA,
            )
            db.add(factura)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                concurrente = repo.por_pago(pago_id)
                if concurrente is not None:
                    return concurrente
                log_event(
                    "facturas", usuario, "Número de factura en uso, reintentando",
                    f"numero={numero} intento={intento}", nivel=logging.WARNING,
                )
                continue
            db.refresh(factura)
            return factura

        raise ConflictoError("No se pudo asignar un número de factura único")

    # ========== PDF ==========

    @staticmethod
    def _documento(factura: Factura) -> DocumentoFactura:
        return DocumentoFactura(
            numero_factura=factura.numero_factura,
            nit=factura.nit,
            razon_social=factura.razon_social,
            numero_autorizacion=factura.numero_autorizacion,
            codigo_control=factura.codigo_control,
            fecha_emision=to_bolivia_time(factura.fecha_emision),
            fecha_limite_emision=to_bolivia_time(factura.fecha_limite_emision),
            empresa_nombre=factura.empresa_nombre,
            empresa_nit=factura.empresa_nit,
            empresa_direccion=factura.empresa_direccion,
            empresa_telefono=factura.empresa_telefono,
            empresa_email=factura.empresa_email,
            sucursal=factura.sucursal,
            municipio=factura.municipio,
            actividad_economica=factura.actividad_economica,
            cliente_nombre=factura.cliente_nombre,
            cliente_email=factura.cliente_email,
            cliente_documento=factura.cliente_documento,
            cliente_complemento=factura.cliente_complemento,
            descripcion=_descripcion(factura.pago),
            subtotal=factura.subtotal,
            descuento=factura.descuento,
            total=factura.total,
            moneda=factura.moneda,
            literal=monto_a_literal(factura.total),
            leyenda=factura.leyenda,
            url_verificacion=factura.url_verificacion,
            qr_fiscal=factura.qr_fiscal,
        )

    @staticmethod
    def _renderizar(db: Session, factura: Factura) -> Factura:
        nombre = f"factura_{factura.numero_factura}_{int(time.time() * 1000)}.pdf"
        destino = Path(config.FACTURAS_DIR) / nombre
        try:
            FacturaService.renderer.render(FacturaService._documento(factura), destino)
        except Exception as e:
            log_event(
                "facturas", factura.usuario, "Error generando PDF",
                f"numero={factura.numero_factura} error={e}", nivel=logging.ERROR,
            )
            raise

        anterior = factura.ruta_pdf
        factura.ruta_pdf = str(destino)
        factura.hash_archivo = hash_archivo(destino)
        factura.estado = EstadoFactura.ENVIADA
        db.commit()
        db.refresh(factura)
        log_event("facturas", factura.usuario, "PDF generado", f"numero={factura.numero_factura} ruta={destino}")

        if anterior and anterior != factura.ruta_pdf:
            try:
                Path(anterior).unlink(missing_ok=True)
            except OSError as e:
                log_event("facturas", factura.usuario, "No se pudo borrar PDF anterior", f"ruta={anterior} error={e}")
        return factura

    @staticmethod
    def regenerar_con_usuario(db: Session, factura_id: int, usuario: Optional[UsuarioToken]) -> Factura:
        """
        Personaliza la factura con la identidad de quien la descarga y
        vuelve a generar QR y PDF.
        """
        factura = FacturaRepositorio(db).obtener(factura_id)
        if factura is None:
            raise NoEncontradoError("Factura", factura_id)

        # Sin identidad (o sin algún dato) se usa el cliente genérico, nunca el de una descarga anterior
        general = config.CLIENTE_GENERAL
        if usuario is None:
            factura.cliente_nombre = general["nombre"]
            factura.cliente_email = general["email"]
            factura.cliente_documento = general["documento"]
            factura.cliente_complemento = general["complemento"] or None
        else:
            factura.cliente_nombre = usuario.nombre or general["nombre"]
            factura.cliente_email = usuario.email or general["email"]
            factura.cliente_documento = usuario.id or general["documento"]
            factura.cliente_complemento = usuario.rol or general["complemento"] or None

        factura.qr_fiscal = generar_qr_data_url(
            construir_texto_qr(
                factura.nit, factura.numero_factura, factura.numero_autorizacion,
                to_bolivia_time(factura.fecha_emision), factura.total, factura.codigo_control,
            )
        )
        db.flush()
        return FacturaService._renderizar(db, factura)

    @staticmethod
    def regenerar_pdf(db: Session, factura_id: int) -> Factura:
        factura = FacturaRepositorio(db).obtener(factura_id)
        if factura is None:
            raise NoEncontradoError("Factura", factura_id)
        return FacturaService._renderizar(db, factura)

    # ========== CONSULTAS ==========

    @staticmethod
    def obtener(db: Session, factura_id: int) -> Factura:
        factura = FacturaRepositorio(db).obtener(factura_id)
        if factura is None:
            raise NoEncontradoError("Factura", factura_id)
        return factura

    @staticmethod
    def listar(db: Session, skip: int = 0, take: int = 100) -> List[Factura]:
        return FacturaRepositorio(db).listar(skip=skip, limit=take)

    @staticmethod
    def por_pago(db: Session, pago_id: int) -> Optional[Factura]:
        return FacturaRepositorio(db).por_pago(pago_id)

    # ========== ARCHIVOS ==========

    @staticmethod
    def listar_archivos_pdf() -> List[Dict[str, Any]]:
        directorio = Path(config.FACTURAS_DIR)
        if not directorio.is_dir():
            return []
        archivos = []
        for ruta in sorted(directorio.glob("*.pdf")):
            stat = ruta.stat()
            archivos.append({
                "nombre": ruta.name,
                "tamano": stat.st_size,
                "creado": datetime.utcfromtimestamp(stat.st_ctime),
                "modificado": datetime.utcfromtimestamp(stat.st_mtime),
            })
        return archivos

    @staticmethod
    def info_archivos(db: Session) -> List[Dict[str, Any]]:
        info = []
        for factura in FacturaRepositorio(db).listar(limit=1000):
            ruta = Path(factura.ruta_pdf) if factura.ruta_pdf else None
            info.append({
                "id": factura.id,
                "numero_factura": factura.numero_factura,
                "ruta_pdf": factura.ruta_pdf,
                "ruta_absoluta": str(ruta.resolve()) if ruta else None,
                "archivo_existe": bool(ruta and ruta.is_file()),
            })
        return info

    @staticmethod
    def ruta_archivo(nombre_archivo: str) -> Path:
        """
        Resuelve un nombre de archivo dentro del directorio de facturas.

        Raises:
            ValidacionError: el nombre incluye rutas o no es un PDF
            NoEncontradoError: el archivo no existe
        """
        if Path(nombre_archivo).name != nombre_archivo or not nombre_archivo.endswith(".pdf"):
            raise ValidacionError("Nombre de archivo inválido")
        directorio = Path(config.FACTURAS_DIR).resolve()
        ruta = (directorio / nombre_archivo).resolve()
        if ruta.parent != directorio:
            raise ValidacionError("Nombre de archivo inválido")
        if not ruta.is_file():
            raise NoEncontradoError("Archivo", nombre_archivo)
        return ruta

    @staticmethod
    def ruta_descarga(factura: Factura) -> Path:
        if not factura.ruta_pdf:
            raise ArchivoError(f"La factura {factura.numero_factura} no tiene PDF generado")
        return Path(factura.ruta_pdf)
