"""Capacidad de completado de texto (Gemini vía REST con httpx).

Se trata como un colaborador poco fiable: cada punto de llamada debe tener
un fallback. Los errores se elevan como UpstreamFailure con un ``reason``
que permite elegir el mensaje al usuario.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence, Union

import httpx

from ..common.config import Settings
from ..common.errors import CapabilityDisabled, UpstreamFailure
from .circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


PromptOrHistory = Union[str, Sequence[ChatMessage]]


class TextCompletion(Protocol):
    """Interfaz abstracta de completado de texto."""

    def enabled(self) -> bool:
        ...

    async def complete(self, prompt: PromptOrHistory) -> str:
        """Devuelve el texto generado.

        Con un string se hace una petición de un solo turno; con una
        secuencia de ChatMessage se envía la conversación completa (el
        último mensaje es la pregunta del usuario).
        """

        ...


class DisabledCompletion(TextCompletion):
    """Capacidad apagada (sin API key configurada)."""

    def enabled(self) -> bool:  # type: ignore[override]
        return False

    async def complete(self, prompt: PromptOrHistory) -> str:  # type: ignore[override]
        raise CapabilityDisabled("text completion is disabled")


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 0.7
    top_p: float = 0.95
    top_k: int = 64
    max_output_tokens: int = 1024

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.max_output_tokens,
        }


class GeminiCompletionClient(TextCompletion):
    """Cliente de ``models/{model}:generateContent``."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 20.0,
        generation: Optional[GenerationConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._timeout = timeout_seconds
        self._generation = generation or GenerationConfig()
        self._breaker = breaker or CircuitBreaker("gemini")
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> TextCompletion:
        if not settings.ai_configured:
            logger.warning("[AI] Gemini API key not configured. AI features will be disabled.")
            return DisabledCompletion()
        return cls(
            settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.ai_timeout_seconds,
        )

    def enabled(self) -> bool:  # type: ignore[override]
        return bool(self._api_key)

    async def complete(self, prompt: PromptOrHistory) -> str:  # type: ignore[override]
        if not self.enabled():
            raise CapabilityDisabled("text completion is disabled")

        payload = {
            "contents": _build_contents(prompt),
            "generationConfig": self._generation.to_payload(),
        }
        return await self._breaker.call(lambda: self._post(payload))

    async def _post(self, payload: Dict[str, Any]) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    self._url,
                    json=payload,
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"network error calling Gemini: {exc}", reason="network") from exc

        if resp.status_code >= 400:
            raise _error_from_response(resp)

        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamFailure("Gemini returned a non-JSON body", reason="unknown") from exc

        return _extract_text(body)


def _build_contents(prompt: PromptOrHistory) -> List[Dict[str, Any]]:
    if isinstance(prompt, str):
        return [{"role": "user", "parts": [{"text": prompt}]}]

    # Gemini llama "model" a lo que aquí es "assistant".
    return [
        {
            "role": "model" if msg.role == "assistant" else "user",
            "parts": [{"text": msg.content}],
        }
        for msg in prompt
    ]


def _error_from_response(resp: httpx.Response) -> UpstreamFailure:
    try:
        message = str(resp.json().get("error", {}).get("message", ""))
    except ValueError:
        message = resp.text[:200]

    lowered = message.lower()
    if resp.status_code == 429 or "quota" in lowered:
        reason = "quota"
    elif "api key" in lowered or resp.status_code in (401, 403):
        reason = "api_key"
    elif "blocked" in lowered or "safety" in lowered:
        reason = "blocked"
    else:
        reason = "http"

    return UpstreamFailure(
        f"Gemini HTTP {resp.status_code}: {message or 'no detail'}",
        reason=reason,
        status_code=resp.status_code,
    )


def _extract_text(body: Dict[str, Any]) -> str:
    feedback = body.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise UpstreamFailure(f"prompt blocked: {feedback['blockReason']}", reason="blocked")

    candidates = body.get("candidates") or []
    if not candidates:
        raise UpstreamFailure("Gemini returned no candidates", reason="empty")

    first = candidates[0]
    if first.get("finishReason") in ("SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT"):
        raise UpstreamFailure(f"response blocked: {first['finishReason']}", reason="blocked")

    parts = (first.get("content") or {}).get("parts") or []
    text = "".join(str(p.get("text", "")) for p in parts)
    if not text.strip():
        raise UpstreamFailure("Gemini returned an empty response", reason="empty")
    return text
