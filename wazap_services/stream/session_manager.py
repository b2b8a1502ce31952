"""Gestor de la sesión de streaming de telemetría.

FUENTE ÚNICA DE VERDAD para el estado del stream en el proceso.

Máquina de estados:
- IDLE: sin suscripción
- CONNECTING: suscripción pedida, todavía sin frames válidos
- ACTIVE: suscripción abierta y frames llegando
- CLOSING: cierre en curso (transitorio, siempre termina en IDLE)

REGLAS:
- Solo puede haber una suscripción abierta; ``start()`` repetido es no-op.
- Un error de transporte cierra la sesión y fuerza la intención a false.
  No hay reintento silencioso: hay que volver a llamar a ``start()``.
- ``pause()`` conserva buffer y lectura actual; ``stop()`` vacía el buffer
  pero conserva la última lectura.
- Los frames de una suscripción ya cerrada se ignoran (identidad por
  ``session_id``).

La instancia vive a nivel de proceso, no de vista: navegar por el
dashboard no interrumpe el stream.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..common.errors import ParseError, TransportError
from .intent_store import IntentStore
from .ring_buffer import DEFAULT_CAPACITY, RingBuffer
from .sample import Sample, parse_frame
from .sse_feed import TelemetryFeed
from .stats import Stats

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Estados de la sesión de streaming."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"


@dataclass(frozen=True)
class SessionSnapshot:
    """Vista inmutable del estado compartido que consumen páginas y alertas."""

    state: SessionState
    streaming: bool
    current_reading: Optional[Sample]
    samples: Tuple[Sample, ...]

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "streaming": self.streaming,
            "current_reading": self.current_reading.to_dict() if self.current_reading else None,
            "samples": [s.to_dict() for s in self.samples],
        }


Listener = Callable[[SessionSnapshot], None]


class StreamingSessionManager:
    """Dueño de la suscripción al feed, del buffer y de la lectura actual."""

    def __init__(
        self,
        feed: TelemetryFeed,
        intent_store: IntentStore,
        *,
        capacity: int = DEFAULT_CAPACITY,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._feed = feed
        self._intent_store = intent_store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._state = SessionState.IDLE
        self._intent = False
        self._buffer = RingBuffer(capacity=capacity)
        self._current: Optional[Sample] = None

        self._session_id = 0
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

        self.stats = Stats()

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._intent

    @property
    def buffer(self) -> RingBuffer:
        return self._buffer

    @property
    def current_reading(self) -> Optional[Sample]:
        return self._current

    @property
    def session_id(self) -> int:
        return self._session_id

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            streaming=self._intent,
            current_reading=self._current,
            samples=self._buffer.samples,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un listener de cambios. Devuelve la función para darse de baja."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Transiciones
    # ------------------------------------------------------------------

    def resume_from_intent(self) -> bool:
        """Consulta la intención persistida (una sola vez por proceso).

        Si era true se reanuda el stream; el buffer sigue vacío hasta que
        lleguen frames nuevos.
        """

        self._intent = bool(self._intent_store.read_intent())
        logger.info("[STREAM] Intención persistida al arrancar: %s", self._intent)
        if self._intent:
            return self.start()
        return False

    def start(self) -> bool:
        """IDLE -> CONNECTING. Requiere un event loop en marcha."""

        if self._state in (SessionState.CONNECTING, SessionState.ACTIVE):
            logger.debug("[STREAM] start() ignorado, estado=%s", self._state.value)
            return False

        loop = asyncio.get_running_loop()

        self._session_id += 1
        session_id = self._session_id
        self.stats.sessions_opened += 1

        self._state = SessionState.CONNECTING
        self._set_intent(True)
        self._task = loop.create_task(
            self._consume(session_id), name=f"telemetry-session-{session_id}"
        )
        logger.info("[STREAM] Sesión %d: IDLE -> CONNECTING", session_id)
        self._notify()
        return True

    def pause(self) -> None:
        """Cierra la suscripción sin tocar buffer ni lectura actual."""

        if self._state != SessionState.IDLE:
            self._close_subscription("pause")
        self._set_intent(False)
        self._notify()

    def stop(self) -> None:
        """Cierra la suscripción y vacía el buffer; la última lectura se conserva."""

        if self._state != SessionState.IDLE:
            self._close_subscription("stop")
        self._buffer = self._buffer.clear()
        self._set_intent(False)
        self._notify()

    async def shutdown(self) -> None:
        """Cierre por fin de proceso: no cambia la intención persistida."""

        task = self._task
        if self._state != SessionState.IDLE:
            self._close_subscription("shutdown")
            self._notify()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def on_frame(self, raw: str | bytes, session_id: Optional[int] = None) -> Optional[Sample]:
        """Procesa un frame crudo de la suscripción actual.

        Los frames de una sesión superada o llegados en IDLE se descartan.
        Un JSON malformado se registra y no cambia el estado.
        """

        if session_id is not None and session_id != self._session_id:
            logger.debug("[STREAM] Frame de sesión %s ignorado (actual=%d)", session_id, self._session_id)
            return None
        if self._state not in (SessionState.CONNECTING, SessionState.ACTIVE):
            return None

        self.stats.received += 1
        self.stats.last_frame_at = self._clock().timestamp()

        try:
            sample = parse_frame(raw, now=self._clock)
        except ParseError as exc:
            self.stats.failed += 1
            logger.warning("[STREAM] Frame descartado: %s", exc)
            return None

        if sample is None:
            return None

        self.stats.parsed += 1
        self._current = sample
        self._buffer = self._buffer.push(sample)

        if self._state == SessionState.CONNECTING:
            self._state = SessionState.ACTIVE
            logger.info("[STREAM] Sesión %d: CONNECTING -> ACTIVE", self._session_id)

        self._notify()
        return sample

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    async def _consume(self, session_id: int) -> None:
        try:
            async with aclosing(self._feed.frames()) as frames:
                async for raw in frames:
                    if session_id != self._session_id:
                        return
                    self.on_frame(raw, session_id=session_id)
            raise TransportError("feed closed by server")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if session_id != self._session_id:
                return
            self._on_transport_error(exc)

    def _on_transport_error(self, exc: Exception) -> None:
        self.stats.transport_errors += 1
        logger.error("[STREAM] Sesión %d: error de transporte: %s", self._session_id, exc)

        self._state = SessionState.CLOSING
        # Estamos dentro de la propia tarea: no se cancela, solo se suelta.
        self._task = None
        self._session_id += 1
        self._state = SessionState.IDLE

        self._set_intent(False, force=True)
        self._notify()

    def _close_subscription(self, reason: str) -> None:
        previous = self._state
        self._state = SessionState.CLOSING

        # Invalida la sesión antes de cancelar: cualquier frame tardío se ignora.
        self._session_id += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        self._state = SessionState.IDLE
        logger.info("[STREAM] %s -> IDLE (%s)", previous.value.upper(), reason)

    def _set_intent(self, value: bool, force: bool = False) -> None:
        if self._intent == value and not force:
            return
        self._intent = value
        try:
            self._intent_store.write_intent(value)
        except Exception:
            logger.exception("[INTENT] Error persistiendo intención=%s", value)

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("[STREAM] Listener falló")
