"""Capa de IA - completado de texto (Gemini), circuit breaker y chat."""

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitState
from .json_extract import extract_json_array
from .text_completion import DisabledCompletion, GeminiCompletionClient, TextCompletion

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "extract_json_array",
    "DisabledCompletion",
    "GeminiCompletionClient",
    "TextCompletion",
]
