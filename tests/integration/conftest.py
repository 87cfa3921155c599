"""Integration fixtures: a todo table backed by in-memory SQLite."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import JSON, Date, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

if TYPE_CHECKING:
    from collections.abc import Generator


class Base(DeclarativeBase):
    pass


class Todo(Base):
    __tablename__ = "todos"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None]
    assigned_to: Mapped[str | None]
    status: Mapped[str] = mapped_column(String(20))
    is_urgent: Mapped[bool]
    complexity: Mapped[int]
    estimated_hours: Mapped[float | None]
    due_date: Mapped[date | None] = mapped_column(Date)
    tags: Mapped[list[str] | None] = mapped_column(JSON(none_as_null=True))


@pytest.fixture
def todo_model() -> type[Todo]:
    return Todo


@pytest.fixture
def todo_session(todo_rows: list[dict[str, Any]]) -> Generator[Session, None, None]:
    """Session on a fresh database holding the shared todo rows."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add_all(Todo(**row) for row in todo_rows)
        session.commit()
        yield session
    engine.dispose()
