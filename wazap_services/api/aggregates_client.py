"""Cliente de la API REST de agregados históricos (solo lectura, JSON)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..common.config import Settings
from ..common.errors import UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergyPoint:
    """Cubeta horaria de la serie de 24h."""

    time: str
    energy: float
    voltage: float = 0.0


@dataclass(frozen=True)
class DailyEnergy:
    date: str  # YYYY-MM-DD
    energy: float


class AggregateSource(Protocol):
    """Lo que necesitan previsión, insights y chat del backend REST."""

    async def total_energy_today(self) -> float:
        ...

    async def average_voltage(self) -> float:
        ...

    async def energy_generation_24h(self) -> List[EnergyPoint]:
        ...

    async def daily_energy_7days(self) -> List[DailyEnergy]:
        ...


class AggregateApiClient(AggregateSource):
    """Implementación sobre httpx. Cualquier fallo se eleva como UpstreamFailure."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "AggregateApiClient":
        return cls(settings.api_base_url, timeout_seconds=settings.http_timeout_seconds)

    async def _get(self, endpoint: str) -> Any:
        url = f"{self._base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(url, headers={"Content-Type": "application/json"})
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamFailure(
                f"API Error: {exc.response.status_code} {endpoint}",
                reason="http",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamFailure(f"API Error: {endpoint}: {exc}", reason="network") from exc

    async def total_energy_today(self) -> float:  # type: ignore[override]
        data = await self._get("/api/data/totalenergytoday")
        return _validate(_TOTAL_ENERGY, data, "totalenergytoday").total_energy or 0.0

    async def average_voltage(self) -> float:  # type: ignore[override]
        data = await self._get("/api/data/average-voltage")
        return _validate(_AVERAGE_VOLTAGE, data, "average-voltage").average_voltage or 0.0

    async def energy_generation_24h(self) -> List[EnergyPoint]:  # type: ignore[override]
        # El backend devuelve {"<hora>": energía, ...}
        data = await self._get("/api/data/energy-generation-24h")
        series = _validate(_HOURLY_SERIES, data, "energy-generation-24h")
        return [EnergyPoint(time=f"{hour}:00", energy=energy or 0.0) for hour, energy in series.items()]

    async def daily_energy_7days(self) -> List[DailyEnergy]:  # type: ignore[override]
        data = await self._get("/api/data/daily-energy-7days")
        records = _validate(_DAILY_RECORDS, data, "daily-energy-7days")
        return [
            DailyEnergy(
                date=f"{r.id.year}-{r.id.month:02d}-{r.id.day:02d}",
                energy=r.total_energy or 0.0,
            )
            for r in records
        ]


# =============================================================================
# Payloads del backend
# =============================================================================

class _TotalEnergy(BaseModel):
    total_energy: Optional[float] = Field(default=None, alias="totalEnergy")


class _AverageVoltage(BaseModel):
    average_voltage: Optional[float] = Field(default=None, alias="averageVoltage")


class _DayKey(BaseModel):
    year: int
    month: int
    day: int


class _DailyRecord(BaseModel):
    """Fila de la agregación diaria: ``{"_id": {year, month, day}, "totalEnergy": n}``."""

    id: _DayKey = Field(alias="_id")
    total_energy: Optional[float] = Field(default=None, alias="totalEnergy")


_TOTAL_ENERGY = TypeAdapter(_TotalEnergy)
_AVERAGE_VOLTAGE = TypeAdapter(_AverageVoltage)
_HOURLY_SERIES = TypeAdapter(Dict[str, Optional[float]])
_DAILY_RECORDS = TypeAdapter(List[_DailyRecord])


def _validate(adapter: TypeAdapter, data: Any, what: str) -> Any:
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        raise UpstreamFailure(f"unexpected {what} payload: {exc}", reason="unknown") from exc
