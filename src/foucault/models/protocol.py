"""Wire models for the remote notebook protocol.

Every response is a JSON envelope. Success: ``{"success": true, "data": ...}``.
Failure: ``{"success": false, "error": <kind>, "code": <code name>,
"message": ..., "details": {...}}``.
"""
from typing import Annotated, Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from foucault.exceptions import ErrorKind, FoucaultError
from foucault.models.schema import MAX_ID

# Note or tag ID as it may appear in a request
RowId = Annotated[int, Field(ge=1, le=MAX_ID)]

# HTTP status for each error kind the server can send
ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_NAME: 409,
    ErrorKind.ALREADY_ATTACHED: 409,
    ErrorKind.NOT_ATTACHED: 409,
    ErrorKind.MALFORMED: 422,
    ErrorKind.READ_ONLY: 403,
    ErrorKind.STORAGE_FAILURE: 500,
}


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CreateNoteParams(_Params):
    name: str = Field(..., description="Unique name of the new note")
    body: str = Field(default="", description="Markdown body")


class UpdateContentParams(_Params):
    id: RowId
    body: str


class RenameParams(_Params):
    """Rename of a note or a tag."""

    id: RowId
    name: str


class TagAssociationParams(_Params):
    note_id: RowId
    tag_id: RowId


class CreateTagParams(_Params):
    name: str


def success_envelope(data: Any = None) -> Dict[str, Any]:
    return {"success": True, "data": data}


def error_envelope(error: FoucaultError) -> Dict[str, Any]:
    """Serialize an engine error; ``to_dict`` carries kind, code and details."""
    payload = error.to_dict()
    return {
        "success": False,
        "error": payload["error"],
        "code": payload["code_name"],
        "message": payload["message"],
        "details": payload["details"],
    }


def error_from_envelope(envelope: Dict[str, Any]) -> FoucaultError:
    """Rebuild the engine error carried by a failure envelope.

    Raises:
        KeyError, ValueError: If the envelope names an unknown kind or code.
    """
    return FoucaultError.from_dict({
        "error": envelope["error"],
        "code_name": envelope.get("code"),
        "message": envelope.get("message", ""),
        "details": envelope.get("details"),
    })


def status_for(error: FoucaultError) -> int:
    return ERROR_STATUS.get(error.kind, 500)
