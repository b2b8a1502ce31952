"""Observaciones legibles a partir de estadísticas agregadas.

Si la IA no está disponible o falla, se devuelve un conjunto fijo de
observaciones genéricas: el panel nunca queda vacío.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..ai.json_extract import extract_json_array
from ..ai.text_completion import TextCompletion
from ..api.aggregates_client import AggregateSource, DailyEnergy
from ..common.errors import ParseError
from .models import Insight, InsightType

logger = logging.getLogger(__name__)


STATIC_INSIGHTS = (
    Insight(
        title="Strong Morning Performance",
        description=(
            "Energy generation peaks between 8-10 AM. Consider optimizing sensor "
            "placement for morning foot traffic."
        ),
        type=InsightType.POSITIVE,
        priority=8,
    ),
    Insight(
        title="Voltage Stability Good",
        description="System voltage remains stable around 3.5V. No calibration needed.",
        type=InsightType.POSITIVE,
        priority=5,
    ),
    Insight(
        title="Weekend Drop Normal",
        description=(
            "Energy generation drops 40% on weekends due to reduced foot traffic. "
            "This is expected behavior."
        ),
        type=InsightType.NEUTRAL,
        priority=3,
    ),
)


def sort_for_display(insights: Iterable[Insight]) -> List[Insight]:
    return sorted(insights, key=lambda i: i.priority, reverse=True)


def build_insights_prompt(total_today: float, avg_voltage: float, daily: List[DailyEnergy]) -> str:
    history = ", ".join(f"{d.date}: {d.energy}mWh" for d in daily)
    return (
        "Analyze this energy harvesting system data and provide 3-5 actionable insights in JSON format:\n\n"
        f"Today's Total: {total_today} mWh\n"
        f"Average Voltage: {avg_voltage} V\n"
        f"7-day History: {history}\n\n"
        "Provide insights as JSON array:\n"
        "[{\n"
        '  "title": "Short insight title",\n'
        '  "description": "Brief explanation and recommendation",\n'
        '  "type": "positive" | "neutral" | "warning",\n'
        '  "priority": 1-10\n'
        "}, ...]\n\n"
        "Focus on: performance trends, efficiency opportunities, unusual patterns, and actionable recommendations.\n"
        "Respond ONLY with valid JSON array, no additional text."
    )


class InsightSummarizer:
    def __init__(self, completion: TextCompletion, stats: AggregateSource) -> None:
        self._completion = completion
        self._stats = stats

    async def summarize(self) -> List[Insight]:
        if not self._completion.enabled():
            return self.fallback()

        try:
            insights = await self._summarize_with_ai()
        except Exception as exc:
            logger.warning("[INSIGHTS] Fallo generando insights con IA: %s", exc)
            return self.fallback()

        if not insights:
            logger.info("[INSIGHTS] IA devolvió un array vacío, usando insights fijos")
            return self.fallback()
        return insights

    async def _summarize_with_ai(self) -> List[Insight]:
        daily, total_today, avg_voltage = await asyncio.gather(
            _or_default(self._stats.daily_energy_7days(), []),
            _or_default(self._stats.total_energy_today(), 0.0),
            _or_default(self._stats.average_voltage(), 0.0),
        )

        text = await self._completion.complete(build_insights_prompt(total_today, avg_voltage, daily))
        return [_insight_from_entry(entry) for entry in extract_json_array(text)]

    @staticmethod
    def fallback() -> List[Insight]:
        return list(STATIC_INSIGHTS)


async def _or_default(coro, default):
    try:
        return await coro
    except Exception as exc:
        logger.debug("[INSIGHTS] Estadística no disponible: %s", exc)
        return default


class InsightEntry(BaseModel):
    """Entrada de la respuesta de la IA para un insight."""

    model_config = ConfigDict(extra="ignore")

    title: str
    description: str = ""
    type: InsightType = InsightType.NEUTRAL
    priority: int = 0

    @field_validator("type", mode="before")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def to_insight(self) -> Insight:
        return Insight(title=self.title, description=self.description, type=self.type, priority=self.priority)


def _insight_from_entry(entry: Any) -> Insight:
    try:
        return InsightEntry.model_validate(entry).to_insight()
    except ValidationError as exc:
        raise ParseError(f"invalid insight entry: {entry!r}") from exc
