"""
records/store.py -- SQLAlchemy-backed persistence for vault entries, contacts and tasks.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in records/models.py
remain the authoritative domain representation.

Pattern: Repository + Data Mapper. RecordStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Ownership:
  Every password-entry method takes owner_id and puts it in the WHERE clause
  next to the entry id. A row owned by someone else is therefore
  indistinguishable from a missing row: get returns None, update returns
  None, delete returns False.

  Contacts and tasks carry no owner and are visible to every authenticated
  user. Their get/update/delete report existence of any row.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = RecordStore()                               # SQLite default
    store = RecordStore("postgresql://user:pw@host/db") # PostgreSQL
    entry_id = store.create_password(entry)
    store.get_password(entry_id, owner_id=7)
    store.close()
"""

import logging
from typing import Optional

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, false
from sqlalchemy.engine import Engine

from core.config import get_settings
from core.db import make_engine, now_iso
from records.models import Contact, PasswordEntry, Task

logger = logging.getLogger("vaultdesk.records")

# Columns a client may change through update_*. Anything else is ignored.
_PASSWORD_FIELDS = {"title", "username", "password", "url", "notes", "category"}
_CONTACT_FIELDS = {"name", "email", "phone", "address", "notes"}
_TASK_FIELDS = {"title", "description", "completed", "due_date", "priority"}

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_passwords = Table(
    "passwords",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("username", String(255), nullable=False),
    Column("password", Text, nullable=False),
    Column("url", String(2048)),
    Column("notes", Text),
    Column("category", String(50)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_contacts = Table(
    "contacts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255)),
    Column("phone", String(50)),
    Column("address", Text),
    Column("notes", Text),
    Column("created_at", String(32), nullable=False),
)

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("completed", Boolean, nullable=False, server_default=false()),
    Column("due_date", String(32)),
    Column("priority", String(10)),
    Column("created_at", String(32), nullable=False),
)


def _allowed(fields: dict, whitelist: set) -> dict:
    return {k: v for k, v in fields.items() if k in whitelist}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RecordStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Password entries (owner-scoped)
    # ------------------------------------------------------------------

    def list_passwords(self, owner_id: int) -> list[PasswordEntry]:
        """Return the owner's entries ordered by title."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _passwords.select().where(_passwords.c.owner_id == owner_id).order_by(_passwords.c.title)
            ).fetchall()
        return [_row_to_password(r) for r in rows]

    def create_password(self, entry: PasswordEntry) -> int:
        """Insert a new entry and return its id."""
        stamp = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _passwords.insert().values(
                    owner_id=entry.owner_id,
                    title=entry.title,
                    username=entry.username,
                    password=entry.password,
                    url=entry.url,
                    notes=entry.notes,
                    category=entry.category,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_password(self, entry_id: int, owner_id: int) -> Optional[PasswordEntry]:
        """Return the entry only if owner_id owns it. None otherwise."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _passwords.select().where((_passwords.c.id == entry_id) & (_passwords.c.owner_id == owner_id))
            ).fetchone()
        return _row_to_password(row) if row is not None else None

    def update_password(self, entry_id: int, owner_id: int, **fields) -> Optional[PasswordEntry]:
        """Update an owned entry. Returns the fresh record, or None if not found / not owned."""
        values = _allowed(fields, _PASSWORD_FIELDS)
        values["updated_at"] = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _passwords.update()
                .where((_passwords.c.id == entry_id) & (_passwords.c.owner_id == owner_id))
                .values(**values)
            )
            conn.commit()
        if result.rowcount == 0:
            logger.info("Password entry %s not found for owner %s", entry_id, owner_id)
            return None
        return self.get_password(entry_id, owner_id)

    def delete_password(self, entry_id: int, owner_id: int) -> bool:
        """Delete an owned entry. Returns False if not found or not owned."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _passwords.delete().where((_passwords.c.id == entry_id) & (_passwords.c.owner_id == owner_id))
            )
            conn.commit()
        if result.rowcount == 0:
            logger.info("Password entry %s not found for owner %s", entry_id, owner_id)
            return False
        return True

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    def list_contacts(self) -> list[Contact]:
        with self.engine.connect() as conn:
            rows = conn.execute(_contacts.select().order_by(_contacts.c.name)).fetchall()
        return [_row_to_contact(r) for r in rows]

    def get_contact(self, contact_id: int) -> Optional[Contact]:
        with self.engine.connect() as conn:
            row = conn.execute(_contacts.select().where(_contacts.c.id == contact_id)).fetchone()
        return _row_to_contact(row) if row is not None else None

    def create_contact(self, contact: Contact) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _contacts.insert().values(
                    name=contact.name,
                    email=contact.email,
                    phone=contact.phone,
                    address=contact.address,
                    notes=contact.notes,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_contact(self, contact_id: int, **fields) -> Optional[Contact]:
        values = _allowed(fields, _CONTACT_FIELDS)
        if not values:
            return self.get_contact(contact_id)
        with self.engine.connect() as conn:
            result = conn.execute(_contacts.update().where(_contacts.c.id == contact_id).values(**values))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_contact(contact_id)

    def delete_contact(self, contact_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_contacts.delete().where(_contacts.c.id == contact_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def list_tasks(self) -> list[Task]:
        """Return all tasks, open ones first, then by due date."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tasks.select().order_by(_tasks.c.completed, _tasks.c.due_date, _tasks.c.id)
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def get_task(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def create_task(self, task: Task) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    title=task.title,
                    description=task.description,
                    completed=task.completed,
                    due_date=task.due_date,
                    priority=task.priority,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_task(self, task_id: int, **fields) -> Optional[Task]:
        values = _allowed(fields, _TASK_FIELDS)
        if not values:
            return self.get_task(task_id)
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(**values))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_task(task_id)

    def delete_task(self, task_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_password(row) -> PasswordEntry:
    return PasswordEntry(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        username=row.username,
        password=row.password,
        url=row.url,
        notes=row.notes,
        category=row.category,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_contact(row) -> Contact:
    return Contact(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        address=row.address,
        notes=row.notes,
        created_at=row.created_at,
    )


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        completed=bool(row.completed),
        due_date=row.due_date,
        priority=row.priority,
        created_at=row.created_at,
    )
