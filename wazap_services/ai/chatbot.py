"""Asistente de chat sobre los datos de energía.

Nunca lanza excepciones: sin IA devuelve un aviso fijo y ante cualquier
fallo devuelve un mensaje de disculpa según el tipo de error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

from ..api.aggregates_client import AggregateSource, EnergyPoint
from ..common.errors import UpstreamFailure
from .text_completion import ChatMessage, TextCompletion

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = (
    "AI features are currently disabled. Please configure your Gemini API key "
    "in the environment variables."
)
INVALID_KEY_MESSAGE = "Invalid API key. Please check your Gemini API key configuration."
QUOTA_MESSAGE = "API quota exceeded. Please try again later."
BLOCKED_MESSAGE = "Content was blocked by safety filters. Please rephrase your question."
GENERIC_ERROR_MESSAGE = "Sorry, I couldn't answer that right now ({detail}). Please try again later."


def build_system_context(total_today: float, avg_voltage: float, series: List[EnergyPoint]) -> str:
    recent = ", ".join(f"{p.energy}mWh at {p.time}" for p in series[-5:])
    return (
        "You are an AI assistant for the WaZap Energy Harvesting System, which converts footsteps "
        "into electrical energy using piezoelectric sensors.\n\n"
        "Current System Data:\n"
        f"- Total Energy Today: {total_today} mWh\n"
        f"- Average Voltage: {avg_voltage} V\n"
        f"- 24h Energy Data Points: {len(series)} readings\n"
        f"- Recent Energy: {recent}\n\n"
        "Your role is to help users understand their energy generation data, answer questions about "
        "system performance, and provide insights. Be concise and helpful."
    )


class ChatAssistant:
    def __init__(self, completion: TextCompletion, stats: AggregateSource) -> None:
        self._completion = completion
        self._stats = stats

    async def ask(self, message: str, history: Sequence[ChatMessage] = ()) -> str:
        if not self._completion.enabled():
            return DISABLED_MESSAGE

        try:
            # El contexto del sistema solo se antepone al primer mensaje.
            if not history:
                series, total_today, avg_voltage = await asyncio.gather(
                    _or_default(self._stats.energy_generation_24h(), []),
                    _or_default(self._stats.total_energy_today(), 0.0),
                    _or_default(self._stats.average_voltage(), 0.0),
                )
                context = build_system_context(total_today, avg_voltage, series)
                message = f"{context}\n\nUser question: {message}"

            conversation = list(history) + [ChatMessage(role="user", content=message)]
            return await self._completion.complete(conversation)
        except UpstreamFailure as exc:
            logger.warning("[AI] Chat falló reason=%s: %s", exc.reason, exc)
            return apology_for(exc)
        except Exception as exc:
            logger.exception("[AI] Error inesperado en chat")
            return GENERIC_ERROR_MESSAGE.format(detail=str(exc) or type(exc).__name__)


def apology_for(exc: UpstreamFailure) -> str:
    if exc.reason == "api_key":
        return INVALID_KEY_MESSAGE
    if exc.reason == "quota":
        return QUOTA_MESSAGE
    if exc.reason == "blocked":
        return BLOCKED_MESSAGE
    return GENERIC_ERROR_MESSAGE.format(detail=str(exc) or "unknown error")


async def _or_default(coro, default):
    try:
        return await coro
    except Exception as exc:
        logger.debug("[AI] Dato de contexto no disponible: %s", exc)
        return default
