"""Report upload and deletion endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from taskreport.api.deps import get_actor, get_orchestrator
from taskreport.ingestion.orchestrator import UploadOrchestrator
from taskreport.models.upload import Actor

router = APIRouter(tags=["uploads"])


class DeleteRequest(BaseModel):
    reason: str


@router.post("", status_code=201)
async def upload_report(
    file: UploadFile = File(...),
    report_date: date = Form(...),
    target_user: Optional[str] = Form(None),
    actor: Actor = Depends(get_actor),
    orchestrator: UploadOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Validate a daily report spreadsheet and store all of its tasks."""
    result = await orchestrator.upload(
        file, file.filename or "", report_date, actor, target_user_id=target_user,
    )
    return result.model_dump()


@router.delete("/{record_id}", status_code=204)
async def delete_report(
    record_id: str,
    body: DeleteRequest,
    actor: Actor = Depends(get_actor),
    orchestrator: UploadOrchestrator = Depends(get_orchestrator),
) -> None:
    await orchestrator.delete(record_id, body.reason, actor)
