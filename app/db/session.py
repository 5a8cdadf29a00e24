from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session
from app.core.config import settings

def build_engine(database_url: str, **kwargs) -> Engine:
    # check_same_thread is needed for SQLite, not for PostgreSQL
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(database_url, **kwargs)

engine = build_engine(settings.DATABASE_URL)

def get_session():
    with Session(engine) as session:
        yield session

def create_db_and_tables(bind: Engine = None):
    # Models must be imported so their tables are registered on the metadata
    import app.models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)
