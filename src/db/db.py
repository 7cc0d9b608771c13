from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base


def create_db_engine(db_file: str | Path, *, echo: bool = False) -> Engine:
    path = Path(db_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    engine: Engine = create_engine(f"sqlite:///{path}", echo=echo)
    Base.metadata.create_all(engine)
    return engine


def init_db(echo: bool = False, *, db_file: str | Path = "dealer_tax.db", reset: bool = False) -> Session:
    path = Path(db_file)
    if reset and path.exists():
        path.unlink()

    engine = create_db_engine(path, echo=echo)
    return sessionmaker(engine)()
