"""
API request and response models for VaultDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
records/models.py, which own the internal domain representation. Route
handlers map between the two.

No response model has a field for a password hash, so a hash cannot leak
into a response even if a handler passes the whole domain object along.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES
from records.models import Contact, PasswordEntry, Task

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Whitespace-stripped string. Never used for passwords or stored secrets,
# which must reach the hasher and the vault byte-for-byte.
Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PriorityEnum(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    email: Trimmed = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        """max_length counts characters; bcrypt's limit is in bytes."""
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    Only shape is checked here. An over-long password is not a validation
    error; it simply fails verification like any other wrong password.
    """

    email: Trimmed = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    username: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            created_at=user.created_at or "",
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


# ---------------------------------------------------------------------------
# Password entries
# ---------------------------------------------------------------------------


class PasswordEntryIn(BaseModel):
    """Request body for POST /api/passwords and PUT /api/passwords/{id}.

    password and notes are stored exactly as sent.
    """

    title: Trimmed = Field(min_length=1, max_length=255)
    username: Trimmed = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1000)
    url: Optional[Trimmed] = Field(default=None, max_length=2048)
    notes: Optional[str] = Field(default=None, max_length=5000)
    category: Optional[Trimmed] = Field(default=None, max_length=50)


class PasswordEntryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    username: str
    password: str
    url: Optional[str]
    notes: Optional[str]
    category: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_entry(cls, entry: PasswordEntry) -> "PasswordEntryResponse":
        return cls(
            id=entry.id,
            title=entry.title,
            username=entry.username,
            password=entry.password,
            url=entry.url,
            notes=entry.notes,
            category=entry.category,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


class ContactIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=5000)


class ContactResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    notes: Optional[str]
    created_at: str

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactResponse":
        return cls(
            id=contact.id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            address=contact.address,
            notes=contact.notes,
            created_at=contact.created_at,
        )


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    completed: bool = False
    due_date: Optional[str] = Field(default=None, max_length=32)
    priority: Optional[PriorityEnum] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: Optional[str]
    completed: bool
    due_date: Optional[str]
    priority: Optional[str]
    created_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            completed=task.completed,
            due_date=task.due_date,
            priority=task.priority,
            created_at=task.created_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response.

    fields is only present on validation errors: one message per offending
    field, keyed by dotted location (e.g. "email", "body.password").
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    fields: Optional[dict[str, str]] = None


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
