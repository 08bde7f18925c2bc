"""Notebook engine talking to a remote ``foucault serve`` over HTTP."""

import json
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from foucault.config import config
from foucault.exceptions import ErrorCode, RemoteUnavailableError
from foucault.models.protocol import error_from_envelope
from foucault.models.schema import Note, NotebookInfo, NoteSummary, Tag
from foucault.services.base import NotebookApi

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Status codes a failure envelope may come with
_ENVELOPE_STATUSES = {403, 404, 409, 422, 500}


class RemoteNotebook(NotebookApi):
    """Notebook engine whose every call is one HTTP request.

    Engine errors reported by the server are raised as the same exception
    classes the local engine raises. Transport failures, timeouts and
    responses that are not a protocol envelope raise
    ``RemoteUnavailableError``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Server address, e.g. ``http://localhost:8078``. The
                scheme defaults to http.
            timeout: Seconds to wait for each call (``FOUCAULT_CLIENT_TIMEOUT``
                when None).
            client: Preconfigured httpx client, used as is and not closed
                by ``close()``.
        """
        if "://" not in base_url:
            base_url = f"http://{base_url}"
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else config.client_timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._client

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as err:
            raise RemoteUnavailableError(
                f"Timed out after {self.timeout}s waiting for {self.base_url}",
                code=ErrorCode.REMOTE_TIMEOUT,
                details={"path": path},
            ) from err
        except httpx.HTTPError as err:
            raise RemoteUnavailableError(
                f"Could not reach {self.base_url}: {err}",
                details={"path": path},
            ) from err
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        """Unwrap the envelope, raising the error it carries if any."""
        path = response.request.url.path
        if response.status_code != 200 and response.status_code not in _ENVELOPE_STATUSES:
            raise RemoteUnavailableError(
                f"Unexpected status {response.status_code} from server",
                code=ErrorCode.RESPONSE_MALFORMED,
                details={"path": path, "status": response.status_code},
            )
        try:
            envelope = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            raise self._malformed(path, "body is not JSON") from err
        if not isinstance(envelope, dict) or not isinstance(envelope.get("success"), bool):
            raise self._malformed(path, "body is not an envelope")

        if envelope["success"]:
            return envelope.get("data")
        try:
            error = error_from_envelope(envelope)
        except (KeyError, ValueError, TypeError) as err:
            raise self._malformed(path, "unknown error in envelope") from err
        logger.debug(f"Server reported {error.kind.value} for {path}: {error.message}")
        raise error

    @staticmethod
    def _malformed(path: str, reason: str) -> RemoteUnavailableError:
        return RemoteUnavailableError(
            f"Malformed response from server: {reason}",
            code=ErrorCode.RESPONSE_MALFORMED,
            details={"path": path},
        )

    def _parse(self, data: Any, type_: Type[T], path: str) -> T:
        try:
            return TypeAdapter(type_).validate_python(data)
        except ValidationError as err:
            raise self._malformed(path, f"unexpected data ({err.error_count()} errors)") from err

    def _get(self, path: str, type_: Type[T], params: Optional[Dict[str, Any]] = None) -> T:
        return self._parse(self._request("GET", path, params=params), type_, path)

    def info(self) -> NotebookInfo:
        return self._get("/notebook", NotebookInfo)

    # Notes

    def create_note(self, name: str, body: str = "") -> int:
        data = self._request("POST", "/note/create", json={"name": name, "body": body})
        return self._parse(data, int, "/note/create")

    def read_note(self, note_id: int) -> Note:
        return self._get("/note/load/id", Note, {"id": note_id})

    def read_note_by_name(self, name: str) -> Note:
        return self._get("/note/load/name", Note, {"name": name})

    def update_note(self, note_id: int, body: str) -> None:
        self._request("PATCH", "/note/update/content", json={"id": note_id, "body": body})

    def rename_note(self, note_id: int, name: str) -> None:
        self._request("PATCH", "/note/update/name", json={"id": note_id, "name": name})

    def delete_note(self, note_id: int) -> None:
        self._request("DELETE", "/note/delete", params={"id": note_id})

    def list_notes(self) -> List[NoteSummary]:
        return self._get("/note/list", List[NoteSummary])

    def search_notes_by_name(self, prefix: str) -> List[NoteSummary]:
        return self._get("/note/search/name", List[NoteSummary], {"prefix": prefix})

    def outgoing_links(self, note_id: int) -> List[str]:
        return self._get("/note/links/outgoing", List[str], {"id": note_id})

    def backlinks_of(self, note_name: str) -> List[NoteSummary]:
        return self._get("/note/links/backlinks", List[NoteSummary], {"name": note_name})

    def validate_note_name(self, name: str) -> str:
        return self._get("/note/validate/name", str, {"name": name})

    # Tags

    def create_tag(self, name: str) -> Tag:
        data = self._request("POST", "/tag/create", json={"name": name})
        return self._parse(data, Tag, "/tag/create")

    def read_tag(self, tag_id: int) -> Tag:
        return self._get("/tag/load/id", Tag, {"id": tag_id})

    def read_tag_by_name(self, name: str) -> Tag:
        return self._get("/tag/load/name", Tag, {"name": name})

    def rename_tag(self, tag_id: int, name: str) -> None:
        self._request("PATCH", "/tag/update/name", json={"id": tag_id, "name": name})

    def delete_tag(self, tag_id: int) -> None:
        self._request("DELETE", "/tag/delete", params={"id": tag_id})

    def list_tags(self) -> List[Tag]:
        return self._get("/tag/list", List[Tag])

    def search_tags(self, pattern: str) -> List[Tag]:
        return self._get("/tag/search/name", List[Tag], {"pattern": pattern})

    def validate_tag_name(self, name: str) -> str:
        return self._get("/tag/validate/name", str, {"name": name})

    def tag(self, note_id: int, tag_id: int) -> None:
        self._request("POST", "/note/tag/add", json={"note_id": note_id, "tag_id": tag_id})

    def untag(self, note_id: int, tag_id: int) -> None:
        self._request("POST", "/note/tag/remove", json={"note_id": note_id, "tag_id": tag_id})

    def list_tags_for_note(self, note_id: int) -> List[Tag]:
        return self._get("/note/tag/list", List[Tag], {"id": note_id})

    def notes_with_tag(self, tag_id: int) -> List[NoteSummary]:
        return self._get("/note/search/tag", List[NoteSummary], {"id": tag_id})

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"<RemoteNotebook(base_url='{self.base_url}')>"
