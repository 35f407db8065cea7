# recipe_archive/app/routers/archive.py
"""
Archive import/export routes.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from recipe_archive.app.deps import get_file_store, get_packager, get_unpacker
from recipe_archive.app.domain.errors import (
    ArchiveBackendUnavailableError,
    MalformedArchiveError,
    MalformedDocumentError,
    NoValidRecipesError,
)
from recipe_archive.app.domain.models import ImportOutcome
from recipe_archive.app.infra.storage.base import FileStore
from recipe_archive.app.schemas.archive import ExportRequest, ImportResponse, NoticeSchema
from recipe_archive.services import json_io
from recipe_archive.services.packager import ArchivePackager
from recipe_archive.services.unpacker import ArchiveUnpacker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/archive", tags=["Archive"])

MAX_UPLOAD_BYTES = 200 * 1024 * 1024


def _attachment(content: bytes, filename: str, media_type: str, message: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Notice": message,
        },
    )


def _import_response(outcome: ImportOutcome) -> ImportResponse:
    if outcome.error is not None:
        if isinstance(outcome.error, ArchiveBackendUnavailableError):
            code = status.HTTP_503_SERVICE_UNAVAILABLE
        elif isinstance(outcome.error, (MalformedArchiveError, MalformedDocumentError)):
            code = status.HTTP_400_BAD_REQUEST
        elif isinstance(outcome.error, NoValidRecipesError):
            code = status.HTTP_422_UNPROCESSABLE_ENTITY
        else:
            code = status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(status_code=code, detail=outcome.notice.message)

    return ImportResponse(
        recipes=outcome.records,
        notice=NoticeSchema(level=outcome.notice.level.value, message=outcome.notice.message),
        skipped=outcome.skipped,
    )


async def _read_body(request: Request) -> bytes:
    body = await request.body()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty request body")
    if len(body) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {MAX_UPLOAD_BYTES // (1024*1024)}MB",
        )
    return body


@router.post("/export")
async def export_zip(
    request: ExportRequest,
    file_store: FileStore = Depends(get_file_store),
    packager: ArchivePackager = Depends(get_packager),
):
    """
    Export recipes with their images and executables as a ZIP archive.
    """
    outcome = await packager.pack(
        request.recipes,
        file_store,
        all_recipes_for_index=request.allRecipesForIndex,
        active_states=request.activeStates,
    )
    if not outcome.ok:
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if isinstance(outcome.error, ArchiveBackendUnavailableError)
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        raise HTTPException(status_code=code, detail=outcome.notice.message)

    return _attachment(outcome.archive, outcome.filename, "application/zip", outcome.notice.message)


@router.post("/import", response_model=ImportResponse)
async def import_zip(
    request: Request,
    file_store: FileStore = Depends(get_file_store),
    unpacker: ArchiveUnpacker = Depends(get_unpacker),
):
    """
    Import a ZIP archive sent as the raw request body.

    Attachments are restored into the file store; the accepted recipes are
    returned for the caller to persist.
    """
    body = await _read_body(request)
    outcome = await unpacker.unpack(body, file_store)
    logger.info("ZIP import finished: %s", outcome.notice.message)
    return _import_response(outcome)


@router.post("/export-json")
async def export_json(request: ExportRequest):
    filename, content = json_io.export_as_json(request.recipes, request.activeStates)
    return _attachment(
        content,
        filename,
        "application/json",
        f"{len(request.recipes)} recipes exported as JSON with index",
    )


@router.post("/import-json", response_model=ImportResponse)
async def import_json(request: Request):
    body = await _read_body(request)
    return _import_response(json_io.import_recipes(body))
