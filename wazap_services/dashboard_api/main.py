from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI

from .endpoints import analytics_router, health_router, stream_router
from .services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(services_factory: Optional[Callable[[], Services]] = None) -> FastAPI:
    """Crea la app con los servicios de proceso.

    La sesión de streaming es de proceso: se reanuda según la intención
    persistida al arrancar y solo se cierra (sin tocar la intención) al
    apagar el servidor.
    """

    factory = services_factory or build_services

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = factory()
        app.state.services = services

        services.session.resume_from_intent()
        services.monitor.start()
        logger.info("[API] Dashboard backend listo")
        try:
            yield
        finally:
            await services.monitor.stop()
            await services.session.shutdown()
            services.intent_store.close()
            logger.info("[API] Dashboard backend detenido")

    app = FastAPI(title="WaZap Telemetry Service", version="0.1.0", lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(stream_router)
    app.include_router(analytics_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    uvicorn.run(
        "wazap_services.dashboard_api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8001")),
    )


if __name__ == "__main__":  # pragma: no cover
    run()
