# inventario/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

from config import settings

load_dotenv()

# 1. Database URL from the environment (.env) or a local SQLite file
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. Some providers hand out postgres://, SQLAlchemy needs postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def build_engine(url: str):
    # SQLite: the busy timeout doubles as the lock wait for movement writes
    if url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.MOVEMENT_LOCK_TIMEOUT_SECONDS,
        }
    else:
        connect_args = {}

    new_engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    if url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def _sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Tables must be registered on the metadata before create_all
    import models.role, models.users, models.category, models.product, models.stock, models.log  # noqa: F401
    Base.metadata.create_all(bind=engine)
