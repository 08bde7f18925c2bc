"""Data models for Foucault notebooks."""

import colorsys
import datetime
import random
from datetime import timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator

from foucault.exceptions import ErrorCode, MalformedError

MAX_NAME_LENGTH = 255
# Largest value an SQLite INTEGER column holds
MAX_ID = 2**63 - 1
# Characters that would end or split a [[reference]] to the note
RESERVED_NOTE_CHARACTERS = "[]`"
MAX_COLOR = 0xFFFFFF


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: datetime.datetime) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite hands back naive datetimes; they were written as UTC.

    Args:
        dt_value: A datetime that may or may not have timezone info.

    Returns:
        The same datetime with UTC timezone if it was naive, otherwise unchanged.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def normalize_name(value: str, field_name: str = "note") -> str:
    """Validate a note or tag name and return its canonical form.

    Surrounding whitespace is stripped; the result must be non-empty,
    single-line and at most MAX_NAME_LENGTH characters. Uniqueness is
    case-sensitive, so case is preserved.

    Raises:
        MalformedError: If the name is unusable.
    """
    code = ErrorCode.TAG_NAME_EMPTY if field_name == "tag" else ErrorCode.NOTE_NAME_EMPTY
    if not isinstance(value, str):
        raise MalformedError(f"The {field_name} name must be a string", code=code)
    name = value.strip()
    if not name:
        raise MalformedError(f"The provided {field_name} name is empty", code=code)
    if "\n" in name or "\r" in name:
        raise MalformedError(
            f"The {field_name} name cannot span several lines",
            code=code,
            details={"name": name[:100]},
        )
    if len(name) > MAX_NAME_LENGTH:
        raise MalformedError(
            f"The {field_name} name exceeds {MAX_NAME_LENGTH} characters",
            code=code,
            details={"name": name[:100]},
        )
    if field_name == "note" and any(c in name for c in RESERVED_NOTE_CHARACTERS):
        raise MalformedError(
            f"The note name cannot contain any of {RESERVED_NOTE_CHARACTERS}",
            code=code,
            details={"name": name[:100]},
        )
    return name


def check_id(value: int, field_name: str = "note_id") -> int:
    """Reject IDs no notebook row can have.

    Raises:
        MalformedError: If ``value`` is outside 1..MAX_ID.
    """
    if not 1 <= value <= MAX_ID:
        raise MalformedError(
            f"{field_name} {value} is out of range",
            code=ErrorCode.ID_OUT_OF_RANGE,
            details={field_name: str(value)},
        )
    return value


def random_tag_color() -> int:
    """Pick a random, readable 24-bit RGB color for a new tag."""
    red, green, blue = colorsys.hsv_to_rgb(
        random.random(), random.uniform(0.45, 0.9), random.uniform(0.75, 1.0)
    )
    return (int(red * 255) << 16) + (int(green * 255) << 8) + int(blue * 255)


class Permissions(str, Enum):
    """Access granted to callers of a notebook engine."""

    READ_WRITE = "read_write"
    READ_ONLY = "read_only"

    @property
    def writable(self) -> bool:
        return self is Permissions.READ_WRITE


class Tag(BaseModel):
    """A tag for categorizing notes."""

    id: int = Field(..., description="Unique ID of the tag")
    name: str = Field(..., description="Unique tag name")
    color: int = Field(default=0, ge=0, le=MAX_COLOR, description="24-bit RGB color")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        """Return string representation of tag."""
        return self.name

    @property
    def hex_color(self) -> str:
        return f"#{self.color:06x}"


class Note(BaseModel):
    """A markdown note."""

    id: int = Field(..., description="Unique ID of the note")
    name: str = Field(..., description="Unique name, target of [[cross-references]]")
    body: str = Field(default="", description="Markdown body of the note")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last updated (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime.datetime) -> datetime.datetime:
        """Treat naive timestamps as UTC."""
        return ensure_timezone_aware(v)


class NoteSummary(BaseModel):
    """A listing row: a note's identity and its tags."""

    id: int
    name: str
    tags: List[Tag] = Field(default_factory=list)

    model_config = {"frozen": True}


class NotebookInfo(BaseModel):
    """What a notebook engine reports about itself."""

    name: str
    permissions: Permissions = Permissions.READ_WRITE
