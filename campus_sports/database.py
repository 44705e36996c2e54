from typing import Iterator

from sqlmodel import Session, SQLModel, create_engine

from campus_sports.core.config import get_settings


settings = get_settings()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, echo=settings.echo_sql, connect_args=connect_args)


def create_db_and_tables() -> None:
    # tables register themselves on import
    from campus_sports.models import booking, facility, payment, schedule, university, user  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
