from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db():
    """
    Creates all auth tables that don't exist yet.
    Schema migrations are out of scope; this only covers first boot.
    """
    import models  # noqa: F401  registers every model on Base.metadata

    Base.metadata.create_all(bind=engine)
