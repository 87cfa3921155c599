"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from livefilter.registry import (
    FieldRegistry,
    array_field,
    boolean_field,
    date_field,
    enum_field,
    float_field,
    integer_field,
    string_field,
)

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample config file describing a todo list."""
    config_path = temp_dir / "config.toml"
    config_path.write_text("""[display]
colored_output = false

[search]
fields = ["title", "description"]

[pagination]
per_page = 20
max_per_page = 50

[[fields]]
name = "title"
type = "string"

[[fields]]
name = "description"
type = "string"

[[fields]]
name = "status"
type = "enum"
label = "Status"
group = "basic"
choices = [
    { value = "pending", label = "Pending" },
    { value = "completed", label = "Completed" },
]

[[fields]]
name = "is_urgent"
type = "boolean"

[[fields]]
name = "complexity"
type = "integer"

[[fields]]
name = "tags"
type = "array"
choices = ["bug", "feature", "urgent"]
""")
    return config_path


@pytest.fixture
def todo_registry() -> FieldRegistry:
    """Registry for the todo fields used across tests."""
    return FieldRegistry(
        [
            string_field("title"),
            string_field("description"),
            string_field("assigned_to", "Assignee"),
            enum_field("status", choices=["pending", "in_progress", "completed", "archived"]),
            boolean_field("is_urgent"),
            integer_field("complexity"),
            float_field("estimated_hours"),
            date_field("due_date"),
            array_field("tags", choices=["bug", "feature", "urgent", "docs"]),
        ]
    )


@pytest.fixture
def todo_rows() -> list[dict[str, Any]]:
    """Five todos with a mix of present and missing values."""
    return [
        {
            "id": 1,
            "title": "Fix login bug",
            "description": "Users cannot log in with SSO",
            "assigned_to": "alice",
            "status": "pending",
            "is_urgent": True,
            "complexity": 3,
            "estimated_hours": 2.5,
            "due_date": date(2024, 3, 1),
            "tags": ["bug", "urgent"],
        },
        {
            "id": 2,
            "title": "Write API docs",
            "description": "Document the search endpoint",
            "assigned_to": "bob",
            "status": "in_progress",
            "is_urgent": False,
            "complexity": 2,
            "estimated_hours": 4.0,
            "due_date": date(2024, 3, 15),
            "tags": ["docs"],
        },
        {
            "id": 3,
            "title": "Refactor search",
            "description": "Split the query builder",
            "assigned_to": None,
            "status": "pending",
            "is_urgent": False,
            "complexity": 8,
            "estimated_hours": 12.0,
            "due_date": None,
            "tags": ["feature"],
        },
        {
            "id": 4,
            "title": "Release 2.0",
            "description": "",
            "assigned_to": "alice",
            "status": "completed",
            "is_urgent": True,
            "complexity": 9,
            "estimated_hours": None,
            "due_date": date(2024, 2, 10),
            "tags": [],
        },
        {
            "id": 5,
            "title": "Archive old tickets",
            "description": None,
            "assigned_to": "carol",
            "status": "archived",
            "is_urgent": False,
            "complexity": 1,
            "estimated_hours": 0.5,
            "due_date": date(2024, 1, 5),
            "tags": None,
        },
    ]
