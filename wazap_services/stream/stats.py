"""Estadísticas de frames recibidos por la sesión."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Stats:
    """Contadores de procesamiento de frames."""

    received: int = 0
    parsed: int = 0
    failed: int = 0
    sessions_opened: int = 0
    transport_errors: int = 0
    last_frame_at: float = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"Stats: received={self.received} parsed={self.parsed} failed={self.failed}"

    def to_dict(self) -> dict:
        return {
            "received": self.received,
            "parsed": self.parsed,
            "failed": self.failed,
            "sessions_opened": self.sessions_opened,
            "transport_errors": self.transport_errors,
            "last_frame_at": self.last_frame_at,
            "started_at": self.started_at.isoformat(),
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        total = self.parsed + self.failed
        if total == 0:
            return 1.0
        return self.parsed / total
