from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from stockroom.config import settings


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str, **kwargs) -> Engine:
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        # Writers queue on the database lock instead of failing at once
        connect_args.setdefault("timeout", settings.SQLITE_BUSY_TIMEOUT)
    return create_engine(url, connect_args=connect_args, **kwargs)


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None):
    # Import all models so Base.metadata knows about them
    import stockroom.models.category  # noqa: F401
    import stockroom.models.inventory_item  # noqa: F401
    import stockroom.models.stock_movement  # noqa: F401
    import stockroom.models.supplier  # noqa: F401
    import stockroom.models.user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
