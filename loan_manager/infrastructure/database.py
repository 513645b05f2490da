"""SQLAlchemy engine and session factory for the `sql` storage backend."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_session_factory(database_url: str) -> sessionmaker:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
