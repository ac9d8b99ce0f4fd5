from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from database.conexion import Base, engine
import models  # 👈 asegura que todos los modelos estén registrados
from utils.errors import ReservasError
from utils.logging_utils import log_event
from utils.rate_limiter import setup_rate_limiting

try:
    Base.metadata.create_all(bind=engine)
    log_event("sistema", "sistema", "Tablas creadas (o ya existian)")
except Exception as e:
    log_event("sistema", "sistema", "Error creando tablas", f"error={e}")

app = FastAPI(title="Reservas de Areas Comunes", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_rate_limiting(app)


@app.exception_handler(ReservasError)
async def reservas_error_handler(request: Request, exc: ReservasError):
    if exc.status_code >= 500:
        log_event("api", "sistema", "Error interno", f"{request.method} {request.url.path} error={exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


from endpoints import auditoria, bloqueo, booking, confirmacion, facturas, pagos, pagos_stripe, reservas
app.include_router(booking.router, prefix=config.API_PREFIX)
app.include_router(bloqueo.router, prefix=config.API_PREFIX)
app.include_router(reservas.router, prefix=config.API_PREFIX)
app.include_router(confirmacion.router, prefix=config.API_PREFIX)
app.include_router(pagos.router, prefix=config.API_PREFIX)
app.include_router(facturas.router, prefix=config.API_PREFIX)
app.include_router(pagos_stripe.router, prefix=config.API_PREFIX)
app.include_router(auditoria.router, prefix=config.API_PREFIX)


@app.get("/")
def read_root():
    return {"message": "API de reservas de áreas comunes", "docs": "/docs"}
