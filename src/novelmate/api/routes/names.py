"""Name dictionary routes and review of detected names."""

import io
from typing import Any, Optional

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from novelmate.services.name_service import NameResolution, NameService, ResolveNamesResult
from novelmate.storage.models import DetectedName, DetectedNameStatus, NameEntry, NameType

router = APIRouter(prefix="/api/v1/novels/{novel_id}", tags=["names"])

_service: Optional[NameService] = None


def set_name_service(service: NameService) -> None:
    """Set the name service instance."""
    global _service
    _service = service


def _svc() -> NameService:
    if _service is None:
        raise RuntimeError("Name service not configured")
    return _service


class NameCreateRequest(BaseModel):
    """Request body for adding a name mapping."""

    model_config = ConfigDict(populate_by_name=True)

    original_name: str = Field(alias="originalName", min_length=1)
    translated_name: str = Field(alias="translatedName", min_length=1)
    type: NameType = NameType.CHARACTER
    context: Optional[str] = None


class NameUpdateRequest(BaseModel):
    """Request body for changing an existing name mapping."""

    model_config = ConfigDict(populate_by_name=True)

    translated_name: Optional[str] = Field(default=None, alias="translatedName")
    type: Optional[NameType] = None


class ResolveNamesRequest(BaseModel):
    """Request body for resolving detected names."""

    model_config = ConfigDict(populate_by_name=True)

    resolved_names: list[NameResolution] = Field(alias="resolvedNames")


@router.get("/names", response_model=list[NameEntry])
async def list_names(novel_id: str) -> list[NameEntry]:
    """Get the name dictionary of a novel."""
    return _svc().list_names(novel_id)


@router.post("/names", status_code=201, response_model=NameEntry)
async def create_name(novel_id: str, body: NameCreateRequest) -> NameEntry:
    """Add a name mapping; 409 if the original name is already mapped."""
    return _svc().create_name(
        novel_id,
        body.original_name,
        body.translated_name,
        body.type.value,
        body.context,
    )


@router.get("/names/export")
async def export_names_csv(novel_id: str) -> StreamingResponse:
    """Export the name dictionary as a CSV download."""
    output = io.StringIO(_svc().export_csv(novel_id))
    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={novel_id}_names.csv"},
    )


@router.post("/names/import")
async def import_names_csv(novel_id: str, file: UploadFile = File(...)) -> dict[str, Any]:
    """Import name mappings from an uploaded CSV; existing names are kept."""
    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded")
    result = _svc().import_csv(novel_id, text)
    return {"status": "ok", **result}


@router.put("/names/{name_id}", response_model=NameEntry)
async def update_name(novel_id: str, name_id: str, body: NameUpdateRequest) -> NameEntry:
    """Change the translation or type of a name mapping."""
    return _svc().update_name(
        novel_id,
        name_id,
        translated_name=body.translated_name,
        type=body.type.value if body.type else None,
    )


@router.delete("/names/{name_id}")
async def delete_name(novel_id: str, name_id: str) -> dict[str, str]:
    """Delete a name mapping."""
    _svc().delete_name(novel_id, name_id)
    return {"status": "ok"}


@router.get("/chapters/{chapter_id}/detected-names", response_model=list[DetectedName])
async def list_detected_names(
    novel_id: str, chapter_id: str, status: str = "pending"
) -> list[DetectedName]:
    """Detected names of a chapter; ``status=all`` includes reviewed ones."""
    if status == "all":
        wanted = None
    else:
        try:
            wanted = DetectedNameStatus(status)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    return _svc().list_detected_names(novel_id, chapter_id, status=wanted)


@router.put("/chapters/{chapter_id}/resolve-names", response_model=ResolveNamesResult)
async def resolve_names(
    novel_id: str, chapter_id: str, body: ResolveNamesRequest
) -> ResolveNamesResult:
    """Add or ignore detected names; per-item failures do not abort the batch."""
    return _svc().resolve_names(novel_id, chapter_id, body.resolved_names)
