"""Custom exceptions for Foucault.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every error carries a wire ``kind``
so that the HTTP server can serialize it and the remote client can raise
the very same exception class the local engine would have raised.
"""
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type


class ErrorKind(str, Enum):
    """Error taxonomy shared by the local engine and the remote protocol."""

    NOT_FOUND = "NotFound"
    DUPLICATE_NAME = "DuplicateName"
    ALREADY_ATTACHED = "AlreadyAttached"
    NOT_ATTACHED = "NotAttached"
    MALFORMED = "Malformed"
    READ_ONLY = "ReadOnly"
    STORAGE_FAILURE = "StorageFailure"
    REMOTE_UNAVAILABLE = "RemoteUnavailable"


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_ALREADY_EXISTS = 1003
    NOTE_NAME_EMPTY = 1004

    # Tag errors (3xxx)
    TAG_NOT_FOUND = 3001
    TAG_ALREADY_EXISTS = 3003
    TAG_NAME_EMPTY = 3004
    TAG_ALREADY_ATTACHED = 3005
    TAG_NOT_ATTACHED = 3006

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_CONNECTION_FAILED = 4004
    NOTEBOOK_CLOSED = 4008

    # Protocol errors (5xxx)
    REQUEST_MALFORMED = 5001
    ID_OUT_OF_RANGE = 5002

    # Remote errors (6xxx)
    REMOTE_UNAVAILABLE = 6001
    REMOTE_TIMEOUT = 6002
    RESPONSE_MALFORMED = 6003

    # Notebook errors (7xxx)
    NOTEBOOK_NOT_FOUND = 7001
    NOTEBOOK_ALREADY_EXISTS = 7002
    NOTEBOOK_READ_ONLY = 7003


class FoucaultError(Exception):
    """Base exception for all Foucault errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    kind: ClassVar[ErrorKind]
    default_code: ClassVar[ErrorCode]

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.kind.value,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FoucaultError":
        """Rebuild an exception from its ``to_dict`` form.

        Raises:
            ValueError: If the kind or code is unknown.
        """
        error_cls = ERROR_CLASSES[ErrorKind(data["error"])]
        code_name = data.get("code_name")
        code = ErrorCode[code_name] if code_name else None
        return error_cls(
            data.get("message", ""), code=code, details=data.get("details") or {}
        )

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NotFoundError(FoucaultError):
    """Raised when a note, tag or notebook lookup misses."""

    kind = ErrorKind.NOT_FOUND
    default_code = ErrorCode.NOTE_NOT_FOUND

    @classmethod
    def note(cls, note_id: int) -> "NotFoundError":
        return cls(
            f"No note with ID {note_id} exists",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id},
        )

    @classmethod
    def note_name(cls, name: str) -> "NotFoundError":
        return cls(
            f"No note named '{name}' exists",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"name": name},
        )

    @classmethod
    def tag(cls, tag_id: int) -> "NotFoundError":
        return cls(
            f"No tag with ID {tag_id} exists",
            code=ErrorCode.TAG_NOT_FOUND,
            details={"tag_id": tag_id},
        )

    @classmethod
    def tag_name(cls, name: str) -> "NotFoundError":
        return cls(
            f"No tag named '{name}' exists",
            code=ErrorCode.TAG_NOT_FOUND,
            details={"name": name},
        )

    @classmethod
    def notebook(cls, name: str) -> "NotFoundError":
        return cls(
            f"No notebook named '{name}' was found",
            code=ErrorCode.NOTEBOOK_NOT_FOUND,
            details={"notebook": name},
        )


class DuplicateNameError(FoucaultError):
    """Raised when a create or rename would violate name uniqueness."""

    kind = ErrorKind.DUPLICATE_NAME
    default_code = ErrorCode.NOTE_ALREADY_EXISTS

    @classmethod
    def note(cls, name: str) -> "DuplicateNameError":
        return cls(
            f"A note named '{name}' already exists",
            code=ErrorCode.NOTE_ALREADY_EXISTS,
            details={"name": name},
        )

    @classmethod
    def tag(cls, name: str) -> "DuplicateNameError":
        return cls(
            f"A tag named '{name}' already exists",
            code=ErrorCode.TAG_ALREADY_EXISTS,
            details={"name": name},
        )

    @classmethod
    def notebook(cls, name: str) -> "DuplicateNameError":
        return cls(
            f"A notebook named '{name}' already exists",
            code=ErrorCode.NOTEBOOK_ALREADY_EXISTS,
            details={"notebook": name},
        )


class AlreadyAttachedError(FoucaultError):
    """Raised when tagging a note that already carries the tag."""

    kind = ErrorKind.ALREADY_ATTACHED
    default_code = ErrorCode.TAG_ALREADY_ATTACHED

    @classmethod
    def pair(cls, note_id: int, tag_id: int) -> "AlreadyAttachedError":
        return cls(
            f"Note {note_id} already has tag {tag_id}",
            details={"note_id": note_id, "tag_id": tag_id},
        )


class NotAttachedError(FoucaultError):
    """Raised when untagging a note that does not carry the tag."""

    kind = ErrorKind.NOT_ATTACHED
    default_code = ErrorCode.TAG_NOT_ATTACHED

    @classmethod
    def pair(cls, note_id: int, tag_id: int) -> "NotAttachedError":
        return cls(
            f"Note {note_id} does not have tag {tag_id}",
            details={"note_id": note_id, "tag_id": tag_id},
        )


class MalformedError(FoucaultError):
    """Raised for unparseable requests and invalid names."""

    kind = ErrorKind.MALFORMED
    default_code = ErrorCode.REQUEST_MALFORMED


class ReadOnlyError(FoucaultError):
    """Raised when a mutation is attempted on a read-only notebook."""

    kind = ErrorKind.READ_ONLY
    default_code = ErrorCode.NOTEBOOK_READ_ONLY

    @classmethod
    def operation(cls, operation: str) -> "ReadOnlyError":
        return cls(
            "The notebook is opened read-only",
            details={"operation": operation},
        )


class StorageFailureError(FoucaultError):
    """Raised for storage/persistence errors.

    Fatal to the current operation; never retried automatically.
    """

    kind = ErrorKind.STORAGE_FAILURE
    default_code = ErrorCode.STORAGE_WRITE_FAILED

    @classmethod
    def wrap(
        cls,
        operation: str,
        original_error: Exception,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
    ) -> "StorageFailureError":
        return cls(
            f"Storage failure during {operation}",
            code=code,
            details={
                "operation": operation,
                "original_error": str(original_error)[:200],
            },
        )


class RemoteUnavailableError(FoucaultError):
    """Raised by the remote client on transport-level failures.

    Distinct from the engine's own taxonomy: it never crosses the wire.
    """

    kind = ErrorKind.REMOTE_UNAVAILABLE
    default_code = ErrorCode.REMOTE_UNAVAILABLE


ERROR_CLASSES: Dict[ErrorKind, Type[FoucaultError]] = {
    error_cls.kind: error_cls
    for error_cls in (
        NotFoundError,
        DuplicateNameError,
        AlreadyAttachedError,
        NotAttachedError,
        MalformedError,
        ReadOnlyError,
        StorageFailureError,
        RemoteUnavailableError,
    )
}
