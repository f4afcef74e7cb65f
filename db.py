import os
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from models import Base


DB_URL = os.getenv("DATABASE_URL", "sqlite:///db.sqlite3")
connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine = create_engine(DB_URL, connect_args=connect_args)
SessionLocal = sessionmaker(engine, expire_on_commit=False)


def init_db():
    Base.metadata.create_all(engine)


def get_session():
    """One session per request, closed once the response is sent."""
    with SessionLocal() as s:
        yield s
