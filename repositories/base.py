"""
Repositorio genérico sobre una sesión SQLAlchemy.

Los repositorios solo hacen flush: la transacción (commit/rollback) la
decide el servicio que los usa.
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from database.conexion import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repositorio(Generic[ModelT]):
    """Operaciones crear/obtener/listar/actualizar/eliminar de una entidad"""

    modelo: Type[ModelT]

    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self):
        return self.db.query(self.modelo)

    def obtener(self, id: int) -> Optional[ModelT]:
        return self.db.get(self.modelo, id)

    def listar(self, skip: int = 0, limit: int = 100) -> List[ModelT]:
        return self._query().order_by(self.modelo.id).offset(skip).limit(limit).all()

    def crear(self, **datos: Any) -> ModelT:
        entidad = self.modelo(**datos)
        self.db.add(entidad)
        self.db.flush()
        return entidad

    def actualizar(self, entidad: ModelT, datos: Dict[str, Any]) -> ModelT:
        for campo, valor in datos.items():
            setattr(entidad, campo, valor)
        self.db.flush()
        return entidad

    def eliminar(self, entidad: ModelT) -> None:
        self.db.delete(entidad)
        self.db.flush()
