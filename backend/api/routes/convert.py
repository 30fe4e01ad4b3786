import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Header, UploadFile
from fastapi.responses import StreamingResponse

from agents.orchestrator import ConversionOrchestrator
from config import get_settings
from models.content import OwnerContext
from services.event_stream import EventSink, QueueEventSink
from services.llm_service import get_llm_service

logger = logging.getLogger("api.convert")
router = APIRouter(prefix="/api/v1/editor", tags=["editor"])

MSG_TIMEOUT = "Conversion timed out"


async def get_owner_context(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_org_id: Optional[str] = Header(None, alias="X-Org-Id"),
) -> OwnerContext:
    """Identity is established upstream; fall back to the configured owner when absent."""
    settings = get_settings()
    return OwnerContext(
        user_id=x_user_id or settings.DEFAULT_OWNER_ID,
        org_id=x_org_id or settings.DEFAULT_ORG_ID,
    )


def get_orchestrator() -> ConversionOrchestrator:
    return ConversionOrchestrator(get_llm_service())


async def run_conversion(
    orchestrator: ConversionOrchestrator,
    filename: Optional[str],
    data: Optional[bytes],
    owner: OwnerContext,
    sink: EventSink,
    timeout: float,
) -> None:
    """Background task: run the pipeline within the request's wall-clock budget."""
    try:
        await asyncio.wait_for(orchestrator.run(filename, data, owner, sink), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Conversion of {filename} exceeded {timeout}s in state {orchestrator.state.value}")
        await sink.error(MSG_TIMEOUT)


@router.post("/convert")
async def convert_document(
    file: UploadFile | None = File(None),
    owner: OwnerContext = Depends(get_owner_context),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
):
    """Convert an uploaded .docx into TipTap content, streaming progress as SSE."""
    settings = get_settings()
    filename = file.filename if file else None
    data = await file.read() if file else None

    sink = QueueEventSink()
    task = asyncio.create_task(
        run_conversion(orchestrator, filename, data, owner, sink, settings.CONVERT_MAX_DURATION_SECONDS)
    )

    async def event_generator():
        try:
            async for frame in sink.frames():
                yield frame
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(event_generator(), media_type="text/event-stream")
