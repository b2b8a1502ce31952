"""Health endpoint."""

from fastapi import APIRouter, Depends

from ..services import Services
from .deps import get_services

router = APIRouter(tags=["health"])


@router.get("/health")
def health(services: Services = Depends(get_services)):
    """Liveness + estado resumido del stream y del monitor."""
    return {
        "status": "ok",
        "stream_state": services.session.state.value,
        "streaming": services.session.is_streaming,
        "anomaly_monitor_running": services.monitor.is_running,
        "stream_stats": services.session.stats.to_dict(),
    }
