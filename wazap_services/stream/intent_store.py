"""Persistencia de la intención de streaming.

Solo se guarda un booleano ("debería haber una sesión activa"). El buffer y
la lectura actual NO se persisten: tras un reinicio el stream se reanuda
solo, pero el buffer arranca vacío hasta que lleguen frames nuevos.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

INTENT_KEY = "isStreaming"


class IntentStore(Protocol):
    """Interfaz del puente de persistencia."""

    def read_intent(self) -> bool:
        """Se consulta una sola vez al arrancar el proceso."""

        ...

    def write_intent(self, streaming: bool) -> None:
        """Se invoca en cada cambio de intención, desde el event loop: no debe bloquear."""

        ...

    def close(self) -> None:
        ...


class InMemoryIntentStore(IntentStore):
    """Implementación en memoria, útil en tests y en modo efímero."""

    def __init__(self, initial: bool = False) -> None:
        self._value = bool(initial)
        self.writes: list[bool] = []

    def read_intent(self) -> bool:  # type: ignore[override]
        return self._value

    def write_intent(self, streaming: bool) -> None:  # type: ignore[override]
        self._value = bool(streaming)
        self.writes.append(self._value)

    def close(self) -> None:  # type: ignore[override]
        pass


class SqlIntentStore(IntentStore):
    """Guarda la intención en una tabla clave/valor vía SQLAlchemy.

    Las escrituras se encolan en un único hilo de trabajo: ``write_intent``
    vuelve enseguida y el orden de las escrituras se conserva. La lectura
    pasa por la misma cola, así que siempre ve la última escritura.
    """

    def __init__(self, engine: Engine, key: str = INTENT_KEY) -> None:
        self._engine = engine
        self._key = key
        self._table_ready = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="intent-writer")
        self._pending: Optional[Future] = None

    def _ensure_table(self) -> None:
        if self._table_ready:
            return
        with self._engine.begin() as conn:
            conn.execute(
                text(
                    """
                    CREATE TABLE IF NOT EXISTS streaming_intent (
                      intent_key VARCHAR(64) PRIMARY KEY,
                      intent_value VARCHAR(8) NOT NULL
                    )
                    """
                )
            )
        self._table_ready = True

    def read_intent(self) -> bool:  # type: ignore[override]
        return self._executor.submit(self._read).result()

    def write_intent(self, streaming: bool) -> None:  # type: ignore[override]
        self._pending = self._executor.submit(self._write, streaming)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Espera a que termine la última escritura encolada."""

        pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    def close(self) -> None:  # type: ignore[override]
        self._executor.shutdown(wait=True)

    def _read(self) -> bool:
        try:
            self._ensure_table()
            with self._engine.connect() as conn:
                row = conn.execute(
                    text("SELECT intent_value FROM streaming_intent WHERE intent_key = :key"),
                    {"key": self._key},
                ).fetchone()
        except Exception:
            logger.exception("[INTENT] Error leyendo intención, se asume false")
            return False

        if not row:
            return False
        return str(row[0]).strip().lower() == "true"

    def _write(self, streaming: bool) -> None:
        value = "true" if streaming else "false"
        try:
            self._ensure_table()
            with self._engine.begin() as conn:
                updated = conn.execute(
                    text(
                        """
                        UPDATE streaming_intent
                        SET intent_value = :value
                        WHERE intent_key = :key
                        """
                    ),
                    {"key": self._key, "value": value},
                ).rowcount
                if not updated:
                    conn.execute(
                        text(
                            """
                            INSERT INTO streaming_intent (intent_key, intent_value)
                            VALUES (:key, :value)
                            """
                        ),
                        {"key": self._key, "value": value},
                    )
        except Exception:
            logger.exception("[INTENT] Error guardando intención=%s", value)
            return

        logger.info("[INTENT] %s=%s", self._key, value)
