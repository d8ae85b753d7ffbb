from __future__ import annotations

from dataclasses import dataclass, field
from typing import NewType, Optional

# Scoping key copied onto every row. Every store function takes one.
Owner = NewType("Owner", str)

# task ids are stored as BIGINT
MAX_TASK_ID = 2**63 - 1


class DuplicateItemError(ValueError):
    """A name (or id) already exists for this owner."""


def require_owner(owner: str) -> Owner:
    if not isinstance(owner, str) or not owner.strip():
        raise ValueError("owner_required")
    return Owner(owner)


def name_key(name: str) -> str:
    """Case-insensitive identity of an item name. Stored next to the name and indexed."""
    return name.strip().casefold()


def as_flag(value, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValueError(f"{field_name} must be a boolean")


@dataclass
class GroceryItem:
    id: int
    name: str
    expanded: bool = False
    purchases: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "expanded": self.expanded,
            "purchases": list(self.purchases),
        }


@dataclass
class Task:
    id: int
    name: str
    completed: bool = False
    due_date: Optional[str] = None

    def to_dict(self) -> dict:
        # dueDate is the name the web client uses
        return {
            "id": self.id,
            "name": self.name,
            "completed": self.completed,
            "dueDate": self.due_date,
        }
