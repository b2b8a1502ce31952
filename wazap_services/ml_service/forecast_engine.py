"""Previsión horaria de energía.

Camino principal: el modelo de texto recibe los totales diarios de los
últimos 7 días y devuelve un array JSON ``[{hour, energy, confidence}]``.
Camino de respaldo: heurística determinista por franja horaria más una
variación aleatoria acotada. ``forecast()`` nunca lanza excepciones: la UI
nunca debe mostrar una previsión vacía.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, FiniteFloat, ValidationError

from ..ai.json_extract import extract_json_array
from ..ai.text_completion import TextCompletion
from ..api.aggregates_client import AggregateSource, DailyEnergy
from ..common.errors import ParseError
from .config.ml_config import DEFAULT_ML_CONFIG, ForecastConfig
from .models import ForecastPoint

logger = logging.getLogger(__name__)


def build_forecast_prompt(daily: Sequence[DailyEnergy], hours: int) -> str:
    history = "\n".join(f"{d.date}: {d.energy} mWh" for d in daily)
    return (
        "Based on this 7-day energy generation history for a piezoelectric energy harvesting system:\n"
        f"{history}\n\n"
        f"Analyze the pattern and predict energy generation for the next {hours} hours in JSON format:\n"
        '[{"hour": 0, "energy": 0.5, "confidence": 0.85}, ...]\n\n'
        "Consider:\n"
        "- Typical daily patterns (higher during work hours)\n"
        "- Weekend vs weekday differences\n"
        "- Recent trends\n\n"
        "Respond ONLY with valid JSON array, no additional text."
    )


class ForecastEntry(BaseModel):
    """Entrada de la respuesta de la IA: ``{hour, energy, confidence}``.

    Valores no finitos (``1e999``, ``NaN``) invalidan la entrada entera.
    """

    model_config = ConfigDict(extra="ignore")

    energy: Optional[FiniteFloat] = None
    confidence: Optional[FiniteFloat] = None


class ForecastEngine:
    def __init__(
        self,
        completion: TextCompletion,
        history: AggregateSource,
        *,
        cfg: Optional[ForecastConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._completion = completion
        self._history = history
        self._cfg = cfg or DEFAULT_ML_CONFIG.forecast
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def forecast(self, hours: Optional[int] = None) -> List[ForecastPoint]:
        """Una previsión por hora desde ahora; longitud == ``hours``."""

        hours = self._cfg.default_horizon_hours if hours is None else max(0, int(hours))
        now = self._clock()
        if hours == 0:
            return []

        if self._completion.enabled():
            try:
                return await self._forecast_with_ai(hours, now)
            except Exception as exc:
                logger.warning("[FORECAST] Fallo de la previsión con IA, usando heurística: %s", exc)

        return self.fallback(hours, now)

    async def _forecast_with_ai(self, hours: int, now: datetime) -> List[ForecastPoint]:
        daily = await self._history.daily_energy_7days()
        text = await self._completion.complete(build_forecast_prompt(daily, hours))
        predictions = extract_json_array(text)

        points = [
            self._point_from_prediction(p, now + timedelta(hours=i))
            for i, p in enumerate(predictions[:hours])
        ]
        if len(points) < hours:
            logger.info("[FORECAST] IA devolvió %d/%d horas, se completa con heurística", len(points), hours)
            points.extend(self.fallback(hours, now)[len(points):])
        return points

    def _point_from_prediction(self, prediction: Any, ts: datetime) -> ForecastPoint:
        try:
            entry = ForecastEntry.model_validate(prediction)
        except ValidationError as exc:
            raise ParseError(f"invalid forecast entry: {prediction!r}") from exc

        energy = entry.energy if entry.energy is not None else 0.0
        confidence = entry.confidence if entry.confidence is not None else self._cfg.default_ai_confidence

        return ForecastPoint(
            timestamp=ts,
            predicted_energy=max(0.0, energy),
            confidence=min(1.0, max(0.0, confidence)),
        )

    def fallback(self, hours: int, now: Optional[datetime] = None) -> List[ForecastPoint]:
        """Heurística: más energía en horario laboral (8-18h)."""

        cfg = self._cfg
        now = now or self._clock()
        forecast: List[ForecastPoint] = []
        for i in range(max(0, hours)):
            hour = (now.hour + i) % 24
            if cfg.busy_start_hour <= hour <= cfg.busy_end_hour:
                base_energy = cfg.busy_base_energy
            else:
                base_energy = cfg.quiet_base_energy
            variation = self._rng.uniform(0.0, cfg.max_random_variation)

            forecast.append(
                ForecastPoint(
                    timestamp=now + timedelta(hours=i),
                    predicted_energy=base_energy + variation,
                    confidence=cfg.fallback_confidence,
                )
            )
        return forecast
