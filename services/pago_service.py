"""
Servicio de pagos de reservas: confirmación, flujo de pago por QR y consultas
"""
import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

import config
from models.pago import MetodoPago, PagoReserva, PagoStatus
from models.reserva import EstadoReserva
from repositories.pagos import PagoRepositorio
from repositories.reservas import ReservaRepositorio
from schemas.auth import UsuarioToken
from services.factura_service import FacturaService
from utils.dependencies import ROL_USUARIO
from utils.errors import ConflictoError, NoEncontradoError, PermisoDenegadoError
from utils.fiscal import formatear_monto, generar_qr_data_url
from utils.logging_utils import log_event


def _marca_tiempo() -> int:
    return int(time.time() * 1000)


class PagoService:
    """Servicio para gestionar pagos y su confirmación"""

    # ========== CRUD ==========

    @staticmethod
    def crear(
        db: Session,
        reserva_id: int,
        monto: Decimal,
        metodo_pago: MetodoPago = MetodoPago.QR_CODE,
        referencia_pago: Optional[str] = None,
        transaccion_id: Optional[str] = None,
        usuario: Optional[UsuarioToken] = None,
    ) -> PagoReserva:
        reserva = ReservaRepositorio(db).obtener(reserva_id)
        if reserva is None:
            raise NoEncontradoError("Reserva", reserva_id)

        pago = PagoRepositorio(db).crear(
            reserva_id=reserva_id,
            monto=monto,
            metodo_pago=metodo_pago,
            estado=PagoStatus.PENDING,
            referencia_pago=referencia_pago or f"PAGO-RESERVA-{reserva_id}-{_marca_tiempo()}",
            transaccion_id=transaccion_id,
            usuario_id=usuario.id if usuario else reserva.usuario_id,
            usuario_nombre=usuario.nombre if usuario else reserva.usuario_nombre,
        )
        db.commit()
        db.refresh(pago)
        log_event("pagos", pago.usuario_nombre or "sistema", "Pago creado", f"pago={pago.id} reserva={reserva_id} monto={monto}")
        return pago

    @staticmethod
    def crear_automatico(db: Session, reserva_id: int, monto: Decimal) -> PagoReserva:
        return PagoService.crear(db, reserva_id, monto)

    @staticmethod
    def obtener(db: Session, pago_id: int) -> PagoReserva:
        pago = PagoRepositorio(db).obtener(pago_id)
        if pago is None:
            raise NoEncontradoError("Pago", pago_id)
        return pago

    @staticmethod
    def listar(db: Session, skip: int = 0, limit: int = 100) -> List[PagoReserva]:
        return PagoRepositorio(db).listar(skip=skip, limit=limit)

    @staticmethod
    def obtener_por_reserva(db: Session, reserva_id: int) -> PagoReserva:
        """Último pago registrado de la reserva"""
        pago = PagoRepositorio(db).ultimo_por_reserva(reserva_id)
        if pago is None:
            raise NoEncontradoError("Pago de la reserva", reserva_id)
        return pago

    @staticmethod
    def actualizar(db: Session, pago_id: int, datos: Dict[str, Any]) -> PagoReserva:
        repo = PagoRepositorio(db)
        pago = PagoService.obtener(db, pago_id)
        if pago.estado == PagoStatus.ACCEPTED and "monto" in datos:
            raise ConflictoError("No se puede modificar el monto de un pago aceptado")
        repo.actualizar(pago, datos)
        db.commit()
        return repo.obtener(pago_id)

    @staticmethod
    def eliminar(db: Session, pago_id: int) -> None:
        pago = PagoService.obtener(db, pago_id)
        if pago.factura is not None:
            raise ConflictoError("El pago tiene una factura emitida y no puede eliminarse")
        PagoRepositorio(db).eliminar(pago)
        db.commit()

    # ========== CONFIRMACIÓN ==========

    @staticmethod
    def confirmar(
        db: Session,
        pago_id: int,
        transaccion_id: Optional[str] = None,
        stripe_session_id: Optional[str] = None,
        usuario: str = "SISTEMA",
    ) -> PagoReserva:
        """
        PENDING -> ACCEPTED, reserva CONFIRMED y factura si no existe.
        Confirmar un pago ya aceptado lo retorna sin cambios.
        """
        repo = PagoRepositorio(db)
        pago = repo.obtener_para_actualizar(pago_id)
        if pago is None:
            raise NoEncontradoError("Pago", pago_id)

        if pago.estado == PagoStatus.ACCEPTED:
            db.rollback()
            log_event("pagos", usuario, "Pago ya confirmado", f"pago={pago_id}")
            return repo.obtener(pago_id)

        pago.estado = PagoStatus.ACCEPTED
        pago.fecha_pago = datetime.utcnow()
        pago.transaccion_id = transaccion_id or pago.transaccion_id or f"TXN-{_marca_tiempo()}"
        if stripe_session_id:
            pago.stripe_session_id = stripe_session_id
        pago.reserva.estado = EstadoReserva.CONFIRMED
        db.commit()
        log_event("pagos", usuario, "Pago confirmado", f"pago={pago_id} transaccion={pago.transaccion_id}")

        PagoService._facturar(db, pago_id)
        return repo.obtener(pago_id)

    @staticmethod
    def _facturar(db: Session, pago_id: int) -> None:
        # Una falla de facturación no revierte la confirmación del pago
        try:
            FacturaService.generar_automatica(db, pago_id)
        except Exception as e:
            db.rollback()
            log_event(
                "pagos", "sistema", "Error generando factura del pago confirmado",
                f"pago={pago_id} error={e}", nivel=logging.ERROR,
            )

    # ========== PAGO POR QR ==========

    @staticmethod
    def generar_qr_pago(db: Session, reserva_id: int, usuario: UsuarioToken) -> Dict[str, Any]:
        """Crea un pago PENDING por QR y retorna los datos bancarios (simulados) para pagar"""
        reserva = ReservaRepositorio(db).obtener(reserva_id)
        if reserva is None:
            raise NoEncontradoError("Reserva", reserva_id)
        if usuario.rol == ROL_USUARIO and reserva.usuario_id != usuario.id:
            raise PermisoDenegadoError("No puede pagar una reserva de otro usuario")

        marca = _marca_tiempo()
        repo = PagoRepositorio(db)
        pago = repo.crear(
            reserva_id=reserva_id,
            monto=reserva.costo,
            metodo_pago=MetodoPago.QR_CODE,
            estado=PagoStatus.PENDING,
            codigo_qr=f"QR-PAGO-{reserva_id}-{marca}",
            referencia_pago=f"REF-QR-{reserva_id}-{marca}",
            transaccion_id=f"TXN-QR-{marca}",
            usuario_id=usuario.id,
            usuario_nombre=usuario.nombre,
        )
        pago.url_qr = f"{config.QR_PAGO_BASE_URL}/{pago.id}"
        db.commit()
        db.refresh(pago)

        banco = config.QR_BANCO
        texto_qr = "|".join([
            banco["banco"], banco["numero_cuenta"], formatear_monto(pago.monto),
            config.FACTURA_MONEDA, pago.referencia_pago,
        ])
        log_event("pagos", usuario.nombre, "QR de pago generado", f"pago={pago.id} reserva={reserva_id}")
        return {
            "pago_id": pago.id,
            "reserva_id": reserva_id,
            "monto": pago.monto,
            "moneda": config.FACTURA_MONEDA,
            "codigo_qr": pago.codigo_qr,
            "url_qr": pago.url_qr,
            "referencia_pago": pago.referencia_pago,
            "qr_imagen": generar_qr_data_url(texto_qr),
            "datos_bancarios": {**banco, "nit": config.EMPRESA["nit"]},
            "instrucciones": [
                "Abra la aplicación de su banco",
                "Seleccione la opción de pago por QR",
                "Escanee el código QR",
                f"Verifique el monto: {formatear_monto(pago.monto)} {config.FACTURA_MONEDA}",
                "Confirme el pago",
            ],
            "fecha_limite": datetime.utcnow() + timedelta(minutes=config.QR_PAGO_MINUTOS),
        }

    @staticmethod
    def confirmar_pago_qr(
        db: Session, pago_id: int, referencia_pago: Optional[str], usuario: UsuarioToken
    ) -> PagoReserva:
        pago = PagoService.obtener(db, pago_id)
        if usuario.rol == ROL_USUARIO and pago.reserva.usuario_id != usuario.id:
            log_event("pagos", usuario.nombre, "Confirmación QR denegada", f"pago={pago_id}")
            raise PermisoDenegadoError("No puede confirmar el pago de una reserva de otro usuario")
        if pago.estado != PagoStatus.PENDING:
            raise ConflictoError("El pago ya fue procesado")

        pago.referencia_pago = referencia_pago or pago.referencia_pago or f"AUTO-QR-{_marca_tiempo()}"
        pago.metodo_pago = MetodoPago.QR_CODE
        db.commit()
        return PagoService.confirmar(db, pago_id, usuario=usuario.nombre)

    # ========== ESTADO ==========

    @staticmethod
    def estado(db: Session, pago_id: int) -> Dict[str, Any]:
        pago = PagoService.obtener(db, pago_id)
        reserva = pago.reserva
        factura = pago.factura
        return {
            "pago": pago,
            "reserva": {
                "id": reserva.id,
                "estado": reserva.estado,
                "area": reserva.area.nombre if reserva.area else None,
                "inicio": reserva.inicio,
                "fin": reserva.fin,
            },
            "factura": None if factura is None else {
                "id": factura.id,
                "numero_factura": factura.numero_factura,
                "estado": factura.estado,
                "ruta_pdf": factura.ruta_pdf,
                "tiene_archivo": bool(factura.ruta_pdf and Path(factura.ruta_pdf).is_file()),
            },
        }
