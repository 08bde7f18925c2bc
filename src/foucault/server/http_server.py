"""HTTP server exposing a notebook engine.

One route per engine operation. Each request makes exactly one call on
the bound ``NotebookService``; handlers are plain functions, which
FastAPI runs in its thread pool while the service lock serializes them.
"""
import logging
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from foucault import __version__
from foucault.config import config
from foucault.exceptions import (ErrorCode, FoucaultError, MalformedError,
                                 StorageFailureError)
from foucault.models.protocol import (CreateNoteParams, CreateTagParams,
                                      RenameParams, TagAssociationParams,
                                      UpdateContentParams, error_envelope,
                                      status_for, success_envelope)
from foucault.models.schema import MAX_ID
from foucault.observability import metrics
from foucault.services.base import NotebookApi

logger = logging.getLogger(__name__)

note_router = APIRouter(prefix="/note", tags=["notes"])
tag_router = APIRouter(prefix="/tag", tags=["tags"])


def get_service(request: Request) -> NotebookApi:
    return request.app.state.service


def _dump(models):
    return [m.model_dump(mode="json") for m in models]


# Notes

@note_router.post("/create")
def create_note(params: CreateNoteParams, service: NotebookApi = Depends(get_service)):
    return success_envelope(service.create_note(params.name, params.body))


@note_router.get("/load/id")
def read_note(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.read_note(id).model_dump(mode="json"))


@note_router.get("/load/name")
def read_note_by_name(name: str = Query(...), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.read_note_by_name(name).model_dump(mode="json"))


@note_router.get("/list")
def list_notes(service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.list_notes()))


@note_router.get("/search/name")
def search_notes_by_name(prefix: str = Query(""), service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.search_notes_by_name(prefix)))


@note_router.get("/search/tag")
def notes_with_tag(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.notes_with_tag(id)))


@note_router.patch("/update/content")
def update_note(params: UpdateContentParams, service: NotebookApi = Depends(get_service)):
    service.update_note(params.id, params.body)
    return success_envelope()


@note_router.patch("/update/name")
def rename_note(params: RenameParams, service: NotebookApi = Depends(get_service)):
    service.rename_note(params.id, params.name)
    return success_envelope()


@note_router.delete("/delete")
def delete_note(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    service.delete_note(id)
    return success_envelope()


@note_router.get("/links/outgoing")
def outgoing_links(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.outgoing_links(id))


@note_router.get("/links/backlinks")
def backlinks_of(name: str = Query(...), service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.backlinks_of(name)))


@note_router.get("/validate/name")
def validate_note_name(name: str = Query(...), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.validate_note_name(name))


@note_router.get("/tag/list")
def list_tags_for_note(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.list_tags_for_note(id)))


@note_router.post("/tag/add")
def tag_note(params: TagAssociationParams, service: NotebookApi = Depends(get_service)):
    service.tag(params.note_id, params.tag_id)
    return success_envelope()


@note_router.post("/tag/remove")
def untag_note(params: TagAssociationParams, service: NotebookApi = Depends(get_service)):
    service.untag(params.note_id, params.tag_id)
    return success_envelope()


# Tags

@tag_router.post("/create")
def create_tag(params: CreateTagParams, service: NotebookApi = Depends(get_service)):
    return success_envelope(service.create_tag(params.name).model_dump(mode="json"))


@tag_router.get("/load/id")
def read_tag(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.read_tag(id).model_dump(mode="json"))


@tag_router.get("/load/name")
def read_tag_by_name(name: str = Query(...), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.read_tag_by_name(name).model_dump(mode="json"))


@tag_router.get("/list")
def list_tags(service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.list_tags()))


@tag_router.get("/search/name")
def search_tags(pattern: str = Query(""), service: NotebookApi = Depends(get_service)):
    return success_envelope(_dump(service.search_tags(pattern)))


@tag_router.get("/validate/name")
def validate_tag_name(name: str = Query(...), service: NotebookApi = Depends(get_service)):
    return success_envelope(service.validate_tag_name(name))


@tag_router.patch("/update/name")
def rename_tag(params: RenameParams, service: NotebookApi = Depends(get_service)):
    service.rename_tag(params.id, params.name)
    return success_envelope()


@tag_router.delete("/delete")
def delete_tag(id: int = Query(..., ge=1, le=MAX_ID), service: NotebookApi = Depends(get_service)):
    service.delete_tag(id)
    return success_envelope()


def register_exception_handlers(app: FastAPI) -> None:
    """Turn engine errors and invalid requests into failure envelopes."""

    @app.exception_handler(FoucaultError)
    async def foucault_error_handler(request: Request, exc: FoucaultError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_for(exc), content=error_envelope(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", "")}
            for e in exc.errors()
        ]
        error = MalformedError(
            "The request could not be parsed",
            code=ErrorCode.REQUEST_MALFORMED,
            details={"path": request.url.path, "errors": errors},
        )
        logger.warning(f"{request.method} {request.url.path} rejected: {errors}")
        return JSONResponse(status_code=status_for(error), content=error_envelope(error))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
        error = StorageFailureError.wrap(request.url.path, exc)
        return JSONResponse(status_code=500, content=error_envelope(error))


def create_app(service: NotebookApi) -> FastAPI:
    """Build the application serving ``service``."""
    app = FastAPI(title="Foucault notebook server", version=__version__)
    app.state.service = service

    @app.get("/notebook")
    def notebook_info():
        return success_envelope(service.info().model_dump(mode="json"))

    @app.get("/metrics")
    def metrics_snapshot():
        return success_envelope({
            "summary": metrics.get_summary(),
            "operations": metrics.get_metrics(),
        })

    app.include_router(note_router)
    app.include_router(tag_router)
    register_exception_handlers(app)
    return app


def serve(
    service: NotebookApi,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: str = "info",
) -> None:
    """Serve ``service`` until interrupted."""
    host = host or config.server_host
    port = port or config.server_port
    info = service.info()
    logger.info(
        f"Serving notebook '{info.name}' ({info.permissions.value}) on {host}:{port}"
    )
    uvicorn.run(create_app(service), host=host, port=port, log_level=log_level.lower())
