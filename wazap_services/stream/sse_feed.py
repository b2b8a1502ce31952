"""Cliente del feed de telemetría (server-sent events) sobre httpx."""

from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Protocol

import httpx

from ..common.errors import TransportError

logger = logging.getLogger(__name__)


class TelemetryFeed(Protocol):
    """Fuente de frames de texto. Cada frame es el payload JSON de un evento."""

    def frames(self) -> AsyncIterator[str]:
        """Abre una suscripción y entrega frames hasta que se cierre.

        Un fallo de transporte se señaliza con TransportError.
        """

        ...


class SseTelemetryFeed(TelemetryFeed):
    """Suscripción ``text/event-stream`` al endpoint de datos crudos.

    Responsabilidades:
    - Abrir la conexión HTTP en streaming
    - Reensamblar las líneas ``data:`` de cada evento
    - Traducir errores de httpx a TransportError
    """

    def __init__(
        self,
        url: str,
        *,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self._timeout = httpx.Timeout(connect_timeout, read=None)
        self._transport = transport

    async def frames(self) -> AsyncIterator[str]:  # type: ignore[override]
        logger.info("[STREAM] Abriendo suscripción SSE url=%s", self.url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream(
                    "GET", self.url, headers={"Accept": "text/event-stream"}
                ) as resp:
                    if resp.status_code != 200:
                        raise TransportError(f"feed responded HTTP {resp.status_code}")

                    data_lines: List[str] = []
                    async for line in resp.aiter_lines():
                        if line == "":
                            # Fin de evento
                            if data_lines:
                                yield "\n".join(data_lines)
                                data_lines = []
                            continue
                        if line.startswith(":"):
                            # Comentario / keep-alive
                            continue

                        name, _, value = line.partition(":")
                        if value.startswith(" "):
                            value = value[1:]
                        if name == "data":
                            data_lines.append(value)

                    if data_lines:
                        yield "\n".join(data_lines)
        except httpx.HTTPError as exc:
            raise TransportError(f"feed transport error: {exc}") from exc
