"""
Servicio de reservas: costo, creación con dependientes, borrado en cascada y reportes
"""
import time
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from models.area import AreaComun
from models.factura import Factura
from models.pago import MetodoPago, PagoReserva, PagoStatus
from models.reserva import Confirmacion, EstadoReserva, Reserva, Verificacion
from repositories.areas import AreaRepositorio, BloqueoRepositorio
from repositories.facturas import FacturaRepositorio
from repositories.pagos import PagoRepositorio
from repositories.reservas import ConfirmacionRepositorio, ReservaRepositorio
from schemas.auth import UsuarioToken
from utils.dependencies import ROL_SUPER, ROL_USUARIO
from utils.errors import ConflictoError, NoEncontradoError, PermisoDenegadoError, ValidacionError
from utils.logging_utils import log_event

CENTAVO = Decimal("0.01")


def calcular_costo(costo_hora: Decimal, inicio: datetime, fin: datetime) -> Decimal:
    """costo_hora * horas (fraccionadas), redondeado a centavos"""
    segundos = Decimal(int((fin - inicio).total_seconds()))
    horas = segundos / Decimal(3600)
    return (Decimal(costo_hora) * horas).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def _marca_tiempo() -> int:
    return int(time.time() * 1000)


class ReservaService:
    """Servicio para gestionar reservas de áreas comunes"""

    @staticmethod
    def _validar_disponibilidad(
        db: Session, area: AreaComun, inicio: datetime, fin: datetime, excluir_id: Optional[int] = None
    ) -> None:
        if fin <= inicio:
            raise ValidacionError("fin debe ser posterior a inicio")
        if not area.activa:
            raise ConflictoError(f"El área {area.nombre} no está activa")

        bloqueo = BloqueoRepositorio(db).solapado(area.id, inicio, fin)
        if bloqueo is not None:
            raise ConflictoError(
                f"El área {area.nombre} está bloqueada entre {bloqueo.inicio} y {bloqueo.fin}"
            )
        if ReservaRepositorio(db).solapada(area.id, inicio, fin, excluir_id=excluir_id) is not None:
            raise ConflictoError(f"El área {area.nombre} ya está reservada en ese horario")

    # ========== CREACIÓN ==========

    @staticmethod
    def crear(
        db: Session,
        area_id: int,
        inicio: datetime,
        fin: datetime,
        usuario: UsuarioToken,
        costo: Optional[Decimal] = None,
        metodo_pago: MetodoPago = MetodoPago.QR_CODE,
    ) -> Tuple[Reserva, Confirmacion, PagoReserva]:
        """
        Crea la reserva junto con su confirmación y su pago pendiente en una
        sola transacción.
        """
        area = AreaRepositorio(db).obtener(area_id)
        if area is None:
            raise NoEncontradoError("Área", area_id)
        ReservaService._validar_disponibilidad(db, area, inicio, fin)

        if costo is None:
            costo = calcular_costo(area.costo_hora, inicio, fin)

        try:
            reserva = ReservaRepositorio(db).crear(
                area_id=area_id,
                usuario_id=str(usuario.id),
                usuario_nombre=usuario.nombre,
                usuario_rol=usuario.rol,
                inicio=inicio,
                fin=fin,
                costo=costo,
                estado=EstadoReserva.PENDING,
            )
            marca = _marca_tiempo()
            confirmacion = ConfirmacionRepositorio(db).crear(
                reserva_id=reserva.id,
                codigo_qr=f"QR-{reserva.id}-{marca}",
                verificada=Verificacion.PENDING,
            )
            pago = PagoRepositorio(db).crear(
                reserva_id=reserva.id,
                metodo_pago=metodo_pago,
                monto=costo,
                estado=PagoStatus.PENDING,
                referencia_pago=f"PAGO-RESERVA-{reserva.id}-{marca}",
                usuario_id=str(usuario.id),
                usuario_nombre=usuario.nombre,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(reserva)
        log_event(
            "reservas", usuario.nombre, "Reserva creada",
            f"reserva={reserva.id} area={area_id} costo={costo} pago={pago.id}",
        )
        return reserva, confirmacion, pago

    # ========== CONSULTAS ==========

    @staticmethod
    def obtener(db: Session, reserva_id: int) -> Reserva:
        reserva = ReservaRepositorio(db).obtener(reserva_id)
        if reserva is None:
            raise NoEncontradoError("Reserva", reserva_id)
        return reserva

    @staticmethod
    def listar(db: Session, usuario: UsuarioToken, skip: int = 0, limit: int = 100) -> List[Reserva]:
        """Los usuarios comunes solo ven sus propias reservas"""
        usuario_id = usuario.id if usuario.rol == ROL_USUARIO else None
        return ReservaRepositorio(db).listar(skip=skip, limit=limit, usuario_id=usuario_id)

    @staticmethod
    def obtener_con_factura(
        db: Session, reserva_id: int, usuario: UsuarioToken
    ) -> Tuple[Reserva, Optional[Factura]]:
        reserva = ReservaService.obtener(db, reserva_id)
        if reserva.usuario_id != str(usuario.id) and usuario.rol != ROL_SUPER:
            log_event("reservas", usuario.nombre, "Acceso denegado a reserva ajena", f"reserva={reserva_id}")
            raise PermisoDenegadoError("No tiene acceso a esta reserva")

        facturas = FacturaRepositorio(db).por_pagos([p.id for p in reserva.pagos])
        return reserva, facturas[0] if facturas else None

    # ========== ACTUALIZACIÓN ==========

    @staticmethod
    def actualizar(db: Session, reserva_id: int, datos: Dict[str, Any]) -> Reserva:
        """Si cambia el horario se revalida la disponibilidad y se recalcula el costo"""
        reserva = ReservaService.obtener(db, reserva_id)
        inicio = datos.get("inicio") or reserva.inicio
        fin = datos.get("fin") or reserva.fin

        if "inicio" in datos or "fin" in datos:
            ReservaService._validar_disponibilidad(db, reserva.area, inicio, fin, excluir_id=reserva.id)
            if datos.get("costo") is None:
                datos["costo"] = calcular_costo(reserva.area.costo_hora, inicio, fin)

        ReservaRepositorio(db).actualizar(reserva, {k: v for k, v in datos.items() if v is not None})
        db.commit()
        return ReservaService.obtener(db, reserva_id)

    # ========== ELIMINACIÓN ==========

    @staticmethod
    def eliminar_en_cascada(db: Session, reserva_id: int) -> Dict[str, int]:
        """
        Borra facturas, pagos, confirmación y reserva, en ese orden, dentro de
        una única transacción: o se borra todo o nada.
        """
        ReservaService.obtener(db, reserva_id)
        pago_ids = [p.id for p in PagoRepositorio(db).por_reserva(reserva_id)]

        try:
            resumen = {"facturas": FacturaRepositorio(db).eliminar_por_pagos(pago_ids)}
            resumen["pagos"] = PagoRepositorio(db).eliminar_por_reserva(reserva_id)
            resumen["confirmaciones"] = ConfirmacionRepositorio(db).eliminar_por_reserva(reserva_id)
            ReservaRepositorio(db).eliminar_por_id(reserva_id)
            db.commit()
        except Exception as e:
            db.rollback()
            log_event("reservas", "sistema", "Error eliminando reserva en cascada", f"reserva={reserva_id} error={e}")
            raise

        db.expunge_all()
        log_event("reservas", "sistema", "Reserva eliminada en cascada", f"reserva={reserva_id} {resumen}")
        return resumen

    # ========== REPORTES ==========

    @staticmethod
    def reporte_ingresos(
        db: Session, fecha_inicio: Optional[datetime] = None, fecha_fin: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        reporte = []
        for fila in ReservaRepositorio(db).ingresos_por_area(fecha_inicio, fecha_fin):
            total = Decimal(fila.total_ingresos).quantize(CENTAVO)
            cantidad = int(fila.cantidad_reservas)
            promedio = (total / cantidad).quantize(CENTAVO, rounding=ROUND_HALF_UP) if cantidad else Decimal("0.00")
            reporte.append({
                "area_id": fila.area_id,
                "nombre": fila.nombre,
                "total_ingresos": total,
                "cantidad_reservas": cantidad,
                "ingreso_promedio": promedio,
            })
        return reporte
