"""
records/models.py -- Domain dataclasses for the stored resources.

These are pure data containers with zero logic. Ownership filtering lives in
records/store.py.

id is None on every class before the record is written to the database.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class PasswordEntry:
    """A credential the user keeps in their vault.

    owner_id is the id of the user who created it and is the filter on every
    read, update and delete. An entry owned by someone else is reported as
    missing, never as forbidden.
    """

    owner_id: int
    title: str
    username: str
    password: str
    url: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass
class Contact:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class Task:
    title: str
    description: Optional[str] = None
    completed: bool = False
    due_date: Optional[str] = None  # ISO 8601
    priority: Optional[str] = None  # "low" | "medium" | "high"
    id: Optional[int] = None
    created_at: str = ""
