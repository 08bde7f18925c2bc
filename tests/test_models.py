# tests/test_models.py
"""Tests for the data models and the error taxonomy."""
import datetime

import pytest
from pydantic import ValidationError

from foucault.exceptions import (ERROR_CLASSES, AlreadyAttachedError,
                                 DuplicateNameError, ErrorCode, ErrorKind,
                                 FoucaultError, MalformedError, NotFoundError,
                                 StorageFailureError)
from foucault.models.protocol import (ERROR_STATUS, CreateNoteParams,
                                      RenameParams, TagAssociationParams,
                                      error_envelope, error_from_envelope,
                                      status_for)
from foucault.models.schema import (MAX_COLOR, MAX_ID, Note, Permissions, Tag,
                                    check_id, ensure_timezone_aware,
                                    normalize_name, random_tag_color)


class TestNoteModel:
    """Tests for the Note model."""

    def test_note_creation(self):
        """Test creating a note with valid values."""
        note = Note(id=1, name="Kant", body="Critique")
        assert note.name == "Kant"
        assert note.body == "Critique"
        assert note.created_at.tzinfo is not None
        assert isinstance(note.updated_at, datetime.datetime)

    def test_naive_timestamps_become_utc(self):
        """Naive datetimes read back from SQLite are treated as UTC."""
        naive = datetime.datetime(2024, 1, 2, 3, 4, 5)
        note = Note(id=1, name="n", created_at=naive, updated_at=naive)
        assert note.created_at.tzinfo == datetime.timezone.utc
        assert note.created_at.hour == 3

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            Note(id=1, name="n", title="legacy")


class TestTagModel:
    """Tests for the Tag model."""

    def test_hex_color(self):
        assert Tag(id=1, name="t", color=0x00FF10).hex_color == "#00ff10"

    def test_color_out_of_range(self):
        with pytest.raises(ValidationError):
            Tag(id=1, name="t", color=MAX_COLOR + 1)

    def test_random_color_is_24_bit(self):
        for _ in range(50):
            assert 0 <= random_tag_color() <= MAX_COLOR


class TestNames:
    """Tests for name normalization."""

    def test_strips_whitespace(self):
        assert normalize_name("  Kant  ") == "Kant"

    def test_case_preserved(self):
        assert normalize_name("kAnT") == "kAnT"

    @pytest.mark.parametrize("value", ["", "   ", "\t"])
    def test_empty_rejected(self, value):
        with pytest.raises(MalformedError) as exc_info:
            normalize_name(value)
        assert exc_info.value.code == ErrorCode.NOTE_NAME_EMPTY

    def test_tag_code(self):
        with pytest.raises(MalformedError) as exc_info:
            normalize_name(" ", "tag")
        assert exc_info.value.code == ErrorCode.TAG_NAME_EMPTY

    def test_multiline_rejected(self):
        with pytest.raises(MalformedError):
            normalize_name("two\nlines")

    @pytest.mark.parametrize("value", ["Hegel]", "[[Hegel", "a`b"])
    def test_reference_syntax_rejected_for_notes(self, value):
        with pytest.raises(MalformedError) as exc_info:
            normalize_name(value)
        assert exc_info.value.code == ErrorCode.NOTE_NAME_EMPTY
        assert exc_info.value.details == {"name": value}

    def test_brackets_allowed_for_tags(self):
        assert normalize_name(" [draft] ", "tag") == "[draft]"

    def test_check_id(self):
        assert check_id(1) == 1
        assert check_id(MAX_ID, "tag_id") == MAX_ID
        with pytest.raises(MalformedError) as exc_info:
            check_id(MAX_ID + 1, "tag_id")
        assert exc_info.value.code == ErrorCode.ID_OUT_OF_RANGE
        assert exc_info.value.details == {"tag_id": str(MAX_ID + 1)}
        with pytest.raises(MalformedError):
            check_id(0)

    def test_ensure_timezone_aware_keeps_aware(self):
        aware = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        assert ensure_timezone_aware(aware) is aware


class TestPermissions:
    def test_writable(self):
        assert Permissions.READ_WRITE.writable
        assert not Permissions("read_only").writable


class TestErrors:
    """Tests for the structured exceptions."""

    def test_factory_sets_code_and_details(self):
        error = NotFoundError.tag(7)
        assert error.kind == ErrorKind.NOT_FOUND
        assert error.code == ErrorCode.TAG_NOT_FOUND
        assert error.details == {"tag_id": 7}
        assert str(error).startswith("[TAG_NOT_FOUND]")

    def test_default_code(self):
        assert AlreadyAttachedError("x").code == ErrorCode.TAG_ALREADY_ATTACHED

    def test_dict_round_trip_keeps_class(self):
        original = DuplicateNameError.note("Kant")
        rebuilt = FoucaultError.from_dict(original.to_dict())
        assert type(rebuilt) is DuplicateNameError
        assert rebuilt.to_dict() == original.to_dict()

    def test_every_kind_has_a_class(self):
        assert set(ERROR_CLASSES) == set(ErrorKind)

    def test_storage_failure_wrap_truncates(self):
        error = StorageFailureError.wrap("update_note", RuntimeError("x" * 500))
        assert len(error.details["original_error"]) == 200
        assert error.details["operation"] == "update_note"


class TestProtocolModels:
    """Tests for the wire envelope helpers."""

    def test_envelope_round_trip(self):
        error = NotFoundError.note(3)
        envelope = error_envelope(error)
        assert envelope["success"] is False
        assert envelope["error"] == "NotFound"
        assert envelope["code"] == "NOTE_NOT_FOUND"
        rebuilt = error_from_envelope(envelope)
        assert isinstance(rebuilt, NotFoundError)
        assert rebuilt.details == {"note_id": 3}

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            error_from_envelope({"error": "Exploded", "code": None})

    def test_statuses(self):
        assert status_for(NotFoundError.note(1)) == 404
        assert status_for(MalformedError("x")) == 422
        assert ErrorKind.REMOTE_UNAVAILABLE not in ERROR_STATUS

    def test_params_forbid_extra_fields(self):
        assert CreateNoteParams(name="n").body == ""
        with pytest.raises(ValidationError):
            CreateNoteParams(name="n", colour=3)

    @pytest.mark.parametrize("bad_id", [0, 2**63])
    def test_params_bound_ids(self, bad_id):
        assert TagAssociationParams(note_id=1, tag_id=MAX_ID).tag_id == MAX_ID
        with pytest.raises(ValidationError):
            RenameParams(id=bad_id, name="n")
        with pytest.raises(ValidationError):
            TagAssociationParams(note_id=bad_id, tag_id=1)
