"""Request-scoped dependencies."""

from __future__ import annotations

from fastapi import Header, Request

from taskreport.ingestion.orchestrator import UploadOrchestrator
from taskreport.models.upload import Actor


def get_actor(
    x_actor_id: str = Header(...),
    x_actor_elevated: bool = Header(False),
) -> Actor:
    """Identity is resolved by the upstream gateway and forwarded in headers."""
    return Actor(id=x_actor_id, is_elevated=x_actor_elevated)


def get_orchestrator(request: Request) -> UploadOrchestrator:
    state = request.app.state
    return UploadOrchestrator(
        schema_provider=state.schema_provider,
        record_store=state.record_store,
        invalidator=state.invalidator,
        config=state.settings.upload,
    )
