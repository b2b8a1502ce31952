"""Control y lectura de la sesión de streaming."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ...stream.session_manager import SessionSnapshot
from ..schemas import StreamStatusOut
from ..services import Services
from .deps import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stream", tags=["stream"])


def _status(services: Services) -> dict:
    data = services.session.snapshot().to_dict()
    data["stats"] = services.session.stats.to_dict()
    return data


@router.get("", response_model=StreamStatusOut)
def stream_status(services: Services = Depends(get_services)):
    return _status(services)


@router.post("/start", response_model=StreamStatusOut)
async def start_stream(services: Services = Depends(get_services)):
    services.session.start()
    return _status(services)


@router.post("/pause", response_model=StreamStatusOut)
async def pause_stream(services: Services = Depends(get_services)):
    services.session.pause()
    return _status(services)


@router.post("/stop", response_model=StreamStatusOut)
async def stop_stream(services: Services = Depends(get_services)):
    services.session.stop()
    return _status(services)


@router.get("/events")
async def stream_events(services: Services = Depends(get_services)):
    """Notificaciones de cambio de la sesión como server-sent events."""

    queue: "asyncio.Queue[SessionSnapshot]" = asyncio.Queue(maxsize=100)

    def _on_change(snapshot: SessionSnapshot) -> None:
        if queue.full():
            # Cliente lento: se descarta la instantánea más vieja.
            queue.get_nowait()
        queue.put_nowait(snapshot)

    async def _events():
        unsubscribe = services.session.subscribe(_on_change)
        try:
            yield f"data: {json.dumps(services.session.snapshot().to_dict())}\n\n"
            while True:
                snapshot = await queue.get()
                yield f"data: {json.dumps(snapshot.to_dict())}\n\n"
        finally:
            unsubscribe()
            logger.debug("[API] Cliente de /stream/events desconectado")

    return StreamingResponse(_events(), media_type="text/event-stream")
