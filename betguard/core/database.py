from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from betguard.core.config import settings

Base = declarative_base()


def engine_options(url: str, timeout: float) -> dict:
    """create_engine kwargs bounding lock and connection waits by ``timeout`` seconds."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}

    connect_args = {}
    if url.startswith("postgresql"):
        connect_args["options"] = f"-c lock_timeout={int(timeout * 1000)}"
    elif url.startswith("mysql"):
        connect_args["init_command"] = f"SET SESSION innodb_lock_wait_timeout={max(1, int(timeout))}"

    return {
        "pool_pre_ping": True,
        "pool_timeout": timeout,
        "connect_args": connect_args,
    }


def make_engine(url: str):
    return create_engine(url, **engine_options(url, settings.DB_TIMEOUT_SECONDS))


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_database(bind=None):
    # models must be imported so their tables are registered on Base
    from betguard.models import audit, bet, blackjack, role, sports, transaction, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
