"""Shared pytest fixtures for bulkset tests.

Two sample schemas are provided: a Core ``students`` table covering every
scalar kind the coercer knows, and an ORM ``Course`` model whose
attribute names differ from its column names.
"""

from __future__ import annotations

import enum
from collections.abc import AsyncGenerator, Generator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    create_engine,
    insert,
)
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, column_property, mapped_column

from bulkset.core.capability import CapabilityCache


class Level(enum.StrEnum):
    FRESHMAN = "freshman"
    SOPHOMORE = "sophomore"
    SENIOR = "senior"


metadata = MetaData()

students_table = Table(
    "students",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("birth_date", DateTime),
    Column("phone_number", Text),
    Column("email", Text, nullable=False, unique=True),
    Column("credits", Integer, nullable=False, default=0),
    Column("gpa", Float),
    Column("balance", Numeric(10, 2)),
    Column("enrolled_on", Date),
    Column("active", Boolean, nullable=False, default=True),
    Column("level", Enum(Level)),
    Column("profile", JSON),
)


class Base(DeclarativeBase):
    pass


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column("course_title", Text)
    seats: Mapped[int] = mapped_column(Integer)
    starts_on: Mapped[date | None] = mapped_column(Date)
    double_seats: Mapped[int] = column_property(seats * 2)


def _student(id_: int, name: str, credits: int, **extra: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": id_,
        "name": name,
        "birth_date": None,
        "phone_number": None,
        "email": f"{name.lower()}@example.com",
        "credits": credits,
        "gpa": None,
        "balance": None,
        "enrolled_on": None,
        "active": True,
        "level": None,
        "profile": None,
    }
    row.update(extra)
    return row


STUDENT_ROWS: list[dict[str, Any]] = [
    _student(
        1,
        "Alice",
        30,
        birth_date=datetime(2001, 5, 17),
        gpa=3.5,
        balance=Decimal("12.50"),
        level=Level.SOPHOMORE,
    ),
    _student(2, "Bob", 12),
    _student(3, "Carol", 90),
]

COURSE_ROWS: list[dict[str, Any]] = [
    {"id": 1, "course_title": "Algebra", "seats": 30},
    {"id": 2, "course_title": "Biology", "seats": 24},
]


@pytest.fixture
def students() -> Table:
    return students_table


@pytest.fixture
def course_model() -> type[Course]:
    return Course


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "bulkset.db"


@pytest.fixture
def db_engine(db_path: Path) -> Generator[Engine]:
    """SQLite engine with both sample schemas created and seeded."""
    engine = create_engine(f"sqlite:///{db_path}")
    metadata.create_all(engine)
    Base.metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(insert(students_table), STUDENT_ROWS)
        conn.execute(insert(Course.__table__), COURSE_ROWS)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest_asyncio.fixture
async def async_engine(db_engine: Engine, db_path: Path) -> AsyncGenerator[AsyncEngine]:
    """aiosqlite engine over the same seeded database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def capabilities() -> CapabilityCache:
    """Capability cache isolated from the process-wide one."""
    return CapabilityCache()
