"""Database schema for the benchmark fixtures."""

from sqlalchemy import Column, Uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class _IdOnly:
    """Every fixture table is a single unique-identifier primary key."""

    id = Column(Uuid, primary_key=True, nullable=False)


class OneRow(_IdOnly, Base):
    __tablename__ = "OneRow"


class OneThousandRows(_IdOnly, Base):
    __tablename__ = "OneThousandRows"


class OneMillionRows(_IdOnly, Base):
    __tablename__ = "OneMillionRows"


FIXTURE_TABLES = {
    model.__tablename__: model.__table__
    for model in (OneRow, OneThousandRows, OneMillionRows)
}
