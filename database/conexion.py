from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
import os
from dotenv import load_dotenv

load_dotenv()

# DATABASE_URL tiene prioridad; si no existe se arma con las variables DB_*
DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"postgresql+psycopg://{os.getenv('DB_USER')}:{os.getenv('DB_PASSWORD')}"
    f"@{os.getenv('DB_HOST')}:{os.getenv('DB_PORT')}/{os.getenv('DB_NAME')}"
)


def _crear_engine(url: str):
    if url.startswith("sqlite"):
        # SQLite en memoria necesita una sola conexion compartida entre hilos
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


engine = _crear_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# create_all se ejecuta desde main.py luego de importar los modelos


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
