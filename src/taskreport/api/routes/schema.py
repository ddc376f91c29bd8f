"""Read-only view of the configured task fields and statuses."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request

router = APIRouter(tags=["schema"])


@router.get("/schema")
async def get_schema(request: Request) -> dict:
    """Return the field schema and status vocabulary used to validate uploads."""
    provider = request.app.state.schema_provider
    fields = await asyncio.to_thread(provider.get_fields)
    statuses = await asyncio.to_thread(provider.get_statuses)
    return {
        "fields": [f.model_dump(mode="json") for f in fields],
        "statuses": [s.model_dump(mode="json") for s in statuses],
    }
