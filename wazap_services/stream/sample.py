from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..common.errors import ParseError


@dataclass(frozen=True)
class Sample:
    """Lectura de telemetría del dispositivo piezoeléctrico.

    Unidades: voltage en V, current en mA, power en mW, force en unidades
    del dispositivo.
    """

    timestamp: datetime
    voltage: float = 0.0
    current: float = 0.0
    power: float = 0.0
    force: float = 0.0

    @property
    def energy(self) -> float:
        # Para el detector de anomalías la potencia instantánea hace de energía.
        return self.power

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        now: Optional[Callable[[], datetime]] = None,
    ) -> "Sample":
        """Normaliza un objeto JSON del feed a través de ``SamplePayload``."""

        return SamplePayload.model_validate(dict(payload)).to_sample(now=now)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "voltage": self.voltage,
            "current": self.current,
            "power": self.power,
            "force": self.force,
        }


class SamplePayload(BaseModel):
    """Schema tolerante de un objeto del feed de telemetría.

    Formato esperado:
    {
        "timestamp": "2025-03-14T07:00:00.000Z",
        "voltage": 3.2,
        "current": 1.5,
        "power": 4.8,
        "force": 20
    }

    Ningún campo es obligatorio. Valores ausentes, no numéricos o no
    finitos valen 0; un timestamp ausente o ilegible queda en None y se
    sustituye por el instante de ingestión en ``to_sample``.
    """

    model_config = ConfigDict(extra="ignore")

    timestamp: Optional[datetime] = None
    voltage: float = Field(default=0.0, allow_inf_nan=False)
    current: float = Field(default=0.0, allow_inf_nan=False)
    power: float = Field(default=0.0, allow_inf_nan=False)
    force: float = Field(default=0.0, allow_inf_nan=False)

    @field_validator("voltage", "current", "power", "force", mode="wrap")
    @classmethod
    def number_or_zero(cls, v, handler):
        if isinstance(v, bool):
            return 0.0
        try:
            return handler(v)
        except ValidationError:
            return 0.0

    @field_validator("timestamp", mode="wrap")
    @classmethod
    def timestamp_or_none(cls, v, handler):
        if v is None or v == "" or isinstance(v, bool):
            return None
        if isinstance(v, str):
            v = v.strip().replace("Z", "+00:00")
        try:
            ts = handler(v)
        except ValidationError:
            return None
        if ts.tzinfo is None:
            return ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)

    def to_sample(self, now: Optional[Callable[[], datetime]] = None) -> Sample:
        clock = now or _utcnow
        return Sample(
            timestamp=self.timestamp if self.timestamp is not None else clock(),
            voltage=self.voltage,
            current=self.current,
            power=self.power,
            force=self.force,
        )


def parse_frame(raw: str | bytes, now: Optional[Callable[[], datetime]] = None) -> Optional[Sample]:
    """Convierte el texto de un frame en un Sample.

    El payload puede ser un objeto o un array de objetos; de un array solo
    se usa el último elemento. Devuelve None si no hay muestra (``null`` o
    array vacío). Lanza ParseError si el JSON es inválido.
    """

    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ParseError(f"invalid frame json: {exc}") from exc

    if isinstance(data, list):
        if not data:
            return None
        data = data[-1]

    if data is None:
        return None
    if not isinstance(data, dict):
        raise ParseError(f"unexpected frame payload type: {type(data).__name__}")

    return SamplePayload.model_validate(data).to_sample(now=now)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
