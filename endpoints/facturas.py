from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

import config
from database import conexion
from schemas.auth import UsuarioToken
from schemas.facturas import (
    FacturaArchivoInfo,
    FacturaRead,
    GenerarFacturaRequest,
    ListaArchivosPDF,
)
from services.auditoria_service import AuditoriaService
from services.factura_service import FacturaService
from utils.dependencies import get_current_user, get_current_user_optional, require_admin
from utils.errors import ArchivoError
from utils.factura_pdf import esperar_pdf
from utils.logging_utils import log_event

router = APIRouter(prefix="/factura", tags=["Facturas"])


# ========== EMISIÓN ==========

@router.post("/generar/{pago_id}", response_model=FacturaRead, status_code=status.HTTP_201_CREATED)
def generar_factura(
    request: Request,
    datos: GenerarFacturaRequest,
    pago_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    """
    Emite la factura del pago con los datos de cliente recibidos.
    Si el pago ya estaba facturado retorna la factura existente.
    """
    factura = FacturaService.generar(
        db,
        pago_id,
        datos.datos_cliente.model_dump(),
        datos.datos_empresa.model_dump() if datos.datos_empresa else None,
        usuario=current_user.nombre,
    )
    AuditoriaService.registrar_accion(
        current_user, "CREATE", "facturas", factura.id, None,
        {"pago_id": pago_id, "numero_factura": factura.numero_factura}, request,
    )
    return factura


@router.post("/automatica/{pago_id}", response_model=FacturaRead, status_code=status.HTTP_201_CREATED)
def generar_factura_automatica(
    request: Request,
    pago_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    factura = FacturaService.generar_automatica(db, pago_id)
    AuditoriaService.registrar_accion(
        current_user, "CREATE", "facturas", factura.id, None,
        {"pago_id": pago_id, "numero_factura": factura.numero_factura}, request,
    )
    return factura


# ========== DEBUG ==========

@router.get("/debug/archivos-pdf", response_model=ListaArchivosPDF)
def debug_archivos_pdf(current_user: UsuarioToken = Depends(require_admin)):
    archivos = FacturaService.listar_archivos_pdf()
    return {
        "directorio": str(config.FACTURAS_DIR.resolve()),
        "total": len(archivos),
        "archivos": archivos,
    }


@router.get("/debug/info-facturas", response_model=List[FacturaArchivoInfo])
def debug_info_facturas(
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    return FacturaService.info_archivos(db)


@router.get("/debug/descargar/{nombre_archivo}")
def debug_descargar(
    nombre_archivo: str,
    current_user: UsuarioToken = Depends(require_admin),
):
    ruta = FacturaService.ruta_archivo(nombre_archivo)
    log_event("facturas", current_user.nombre, "Descarga debug", f"archivo={nombre_archivo}")
    return FileResponse(ruta, media_type="application/pdf", filename=ruta.name)


# ========== CONSULTAS ==========

@router.get("", response_model=List[FacturaRead])
def listar_facturas(
    skip: int = Query(0, ge=0),
    take: int = Query(100, ge=1, le=500),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return FacturaService.listar(db, skip=skip, take=take)


@router.get("/{factura_id}", response_model=FacturaRead)
def obtener_factura(
    factura_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return FacturaService.obtener(db, factura_id)


@router.get("/{factura_id}/descargar")
def descargar_factura(
    factura_id: int = Path(..., gt=0),
    current_user: Optional[UsuarioToken] = Depends(get_current_user_optional),
    db: Session = Depends(conexion.get_db),
):
    """
    Regenera el PDF con la identidad de quien descarga (o el cliente
    genérico si no hay identidad) y lo envía como adjunto.
    """
    factura = FacturaService.regenerar_con_usuario(db, factura_id, current_user)
    ruta = FacturaService.ruta_descarga(factura)
    if not esperar_pdf(ruta):
        raise ArchivoError(f"El PDF de la factura {factura.numero_factura} no está disponible")

    log_event(
        "facturas", current_user.nombre if current_user else "anonimo",
        "Factura descargada", f"numero={factura.numero_factura}",
    )
    return FileResponse(ruta, media_type="application/pdf", filename=ruta.name)


@router.post("/{factura_id}/regenerar-pdf", response_model=FacturaRead)
def regenerar_pdf(
    request: Request,
    factura_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    factura = FacturaService.regenerar_pdf(db, factura_id)
    AuditoriaService.registrar_accion(
        current_user, "UPDATE", "facturas", factura_id, None, {"ruta_pdf": factura.ruta_pdf}, request
    )
    return factura
