"""Circuit Breaker para la llamada de completado de texto.

Evita seguir golpeando la API de IA cuando falla de forma repetida (cuota,
timeouts). Mientras el circuito está abierto las llamadas fallan al momento
y los llamadores usan su fallback.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from ..common.errors import UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Estados del circuit breaker."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuración del circuit breaker."""
    failure_threshold: int = 5
    recovery_timeout_seconds: float = 30.0
    success_threshold: int = 2

    @classmethod
    def from_env(cls) -> "CircuitBreakerConfig":
        return cls(
            failure_threshold=int(os.getenv("CB_FAILURE_THRESHOLD", "5")),
            recovery_timeout_seconds=float(os.getenv("CB_RECOVERY_TIMEOUT", "30")),
            success_threshold=int(os.getenv("CB_SUCCESS_THRESHOLD", "2")),
        )


class CircuitBreakerOpen(UpstreamFailure):
    """Excepción cuando el circuito está abierto."""

    def __init__(self, name: str, remaining_seconds: float):
        self.name = name
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Circuit breaker '{name}' is OPEN. Retry in {remaining_seconds:.1f}s",
            reason="circuit_open",
        )


class CircuitBreaker:
    """Circuit breaker para corrutinas.

    Sin locks: todo corre en un único event loop.

    Uso:
        cb = CircuitBreaker("gemini")

        try:
            text = await cb.call(lambda: client.post(...))
        except UpstreamFailure:
            return fallback()
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._config = config or CircuitBreakerConfig.from_env()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float = 0

    @property
    def state(self) -> CircuitState:
        self._check_state_transition()
        return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Ejecuta ``func`` protegida por el circuito.

        Raises:
            CircuitBreakerOpen: si el circuito está abierto
        """
        self._check_state_transition()
        if self._state == CircuitState.OPEN:
            raise CircuitBreakerOpen(self.name, self._get_remaining_timeout())

        try:
            result = await func()
        except Exception as e:
            self._on_failure(e)
            raise

        self._on_success()
        return result

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0

    def _check_state_transition(self) -> None:
        if self._state == CircuitState.OPEN:
            elapsed = self._clock() - self._last_failure_time
            if elapsed >= self._config.recovery_timeout_seconds:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
                logger.info("[AI] CircuitBreaker '%s': OPEN -> HALF_OPEN", self.name)

    def _get_remaining_timeout(self) -> float:
        elapsed = self._clock() - self._last_failure_time
        return max(0.0, self._config.recovery_timeout_seconds - elapsed)

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self._config.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                logger.info("[AI] CircuitBreaker '%s': HALF_OPEN -> CLOSED", self.name)
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def _on_failure(self, error: Exception) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning(
                "[AI] CircuitBreaker '%s': HALF_OPEN -> OPEN (test failed: %s)",
                self.name,
                str(error)[:100],
            )
        elif self._state == CircuitState.CLOSED and self._failure_count >= self._config.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "[AI] CircuitBreaker '%s': CLOSED -> OPEN (failures=%d, error=%s)",
                self.name,
                self._failure_count,
                str(error)[:100],
            )
