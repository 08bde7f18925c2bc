"""States of an interactive notebook session."""
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Listing:
    """Browsing every note."""


@dataclass(frozen=True)
class Filtering:
    """Browsing the notes carrying one tag."""

    tag_id: int


@dataclass(frozen=True)
class Searching:
    """Browsing the notes whose name starts with a prefix."""

    prefix: str


ListingState = Union[Listing, Filtering, Searching]
LISTING_STATES = (Listing, Filtering, Searching)


@dataclass(frozen=True)
class Viewing:
    """Reading one note; ``origin`` is the listing to go back to."""

    note_id: int
    origin: ListingState


@dataclass(frozen=True)
class EditingExternal:
    """An external editor owns the terminal while it edits a note."""

    note_id: int
    viewing: Viewing


@dataclass(frozen=True)
class Closed:
    """The session has ended."""


SessionState = Union[Listing, Filtering, Searching, Viewing, EditingExternal, Closed]
