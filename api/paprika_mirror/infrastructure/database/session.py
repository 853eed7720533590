"""
Gestión del engine y sesiones de base de datos.

El nucleo de sync usa conexiones (SQLAlchemy Core) con transacciones
explicitas; la capa de consulta usa sesiones ORM sobre el mismo engine.
"""
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from paprika_mirror.core.config import settings


# Base para modelos de SQLAlchemy
Base = declarative_base()

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _create_engine_args(url: str) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    PostgreSQL usa pool de conexiones; SQLite necesita compartir conexiones
    entre los threads del sync.
    """
    args = {
        "echo": settings.DEBUG,
        "future": True,
    }

    if url.startswith("postgresql"):
        args.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })
    elif url.startswith("sqlite"):
        args["connect_args"] = {"check_same_thread": False}

    return args


def _install_sqlite_pragmas(engine: Engine) -> None:
    """
    SQLite no valida FKs por defecto y pysqlite maneja BEGIN a su manera.

    Activamos `foreign_keys` y emitimos BEGIN nosotros para que las FKs
    diferidas se validen en el COMMIT, igual que en PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_mirror_engine(database_url: Optional[str] = None) -> Engine:
    """Crea un engine sincrono para la URL indicada (o la de settings)."""
    url = database_url or settings.sync_database_url
    engine = create_engine(url, **_create_engine_args(url))
    if engine.dialect.name == "sqlite":
        _install_sqlite_pragmas(engine)
    return engine


def init_engine(database_url: Optional[str] = None) -> Engine:
    """(Re)inicializa el engine global y su session factory."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = create_mirror_engine(database_url)
    _SessionLocal = sessionmaker(
        bind=_engine,
        class_=Session,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def SessionLocal() -> sessionmaker:
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Generador de sesiones de solo lectura.
    Para usar como dependencia en FastAPI.

    Yields:
        Session: Sesión de base de datos
    """
    db = SessionLocal()()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """Inicializa la base de datos creando todas las tablas."""
    # Registrar modelos antes de create_all
    from paprika_mirror.infrastructure.database import models  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
