from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from app.settings import settings


def make_engine(url: str) -> Engine:
    # worker tasks and to_thread extraction share connections across threads
    return create_engine(url, echo=False, future=True,
                         connect_args={"check_same_thread": False})


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False,
                        expire_on_commit=False, future=True)


engine = make_engine(f"sqlite:///{settings.SQLITE_PATH}")
SessionLocal = make_session_factory(engine)


class Base(DeclarativeBase):
    pass


def init_db(bind: Engine | None = None):
    from infra.db.models import DocumentRecord, EvaluationJobRecord, GroundTruthRecord
    Base.metadata.create_all(bind=bind or engine)
