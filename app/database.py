from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require      : enforce SSL when running in the cloud
# - pool_size=1          : keep only 1 connection to the Supabase pooler
# - max_overflow=0       : do not open extra connections beyond the pool
# - pool_pre_ping=True   : validate connections before using them
# - pool_timeout         : fail fast when the single connection is busy
# - statement_timeout    : every query is bounded server-side
#
# Supabase Session mode limits the number of clients, so each backend
# process holds a single pooled connection.
# ---------------------------------------------------------


def _is_postgres(url: str) -> bool:
    return url.startswith("postgres")


def build_engine(db_url: str) -> Engine:
    """
    Create the SQLModel engine for the given URL.

    Postgres URLs get SSL, the tiny pool and a statement timeout.
    Anything else (e.g. SQLite for local work) is created as-is.
    """
    if not _is_postgres(db_url):
        return create_engine(db_url, echo=False)

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
        pool_timeout=settings.DB_POOL_TIMEOUT_S,
        connect_args={
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        },
    )


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
