"""
Registro de auditoría de acciones sobre las tablas del sistema
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index

from database.conexion import Base


class AuditoriaLog(Base):
    __tablename__ = "auditoria_logs"
    __table_args__ = (
        Index("idx_auditoria_tabla_registro", "tabla", "registro_id"),
        Index("idx_auditoria_usuario", "usuario_id"),
        Index("idx_auditoria_fecha", "fecha_hora"),
    )

    id = Column(Integer, primary_key=True, index=True)
    usuario_id = Column(String(64), nullable=True)
    usuario_nombre = Column(String(150), nullable=True)
    usuario_rol = Column(String(50), nullable=True)

    accion = Column(String(50), nullable=False)
    tabla = Column(String(100), nullable=False)
    registro_id = Column(String(64), nullable=True)
    datos_anteriores = Column(JSON, nullable=True)
    datos_nuevos = Column(JSON, nullable=True)

    ip = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    endpoint = Column(String(255), nullable=True)
    metodo = Column(String(10), nullable=True)

    fecha_hora = Column(DateTime, nullable=False, default=datetime.utcnow)
