"""Taxonomía de errores del pipeline de telemetría.

- ParseError: frame o respuesta de IA con JSON inválido. Se recupera localmente.
- TransportError: fallo de la suscripción al feed. Fatal para la sesión actual.
- CapabilityDisabled: IA desactivada. No es un fallo, siempre hay fallback.
- UpstreamFailure: la llamada a IA falló (timeout, cuota, contenido bloqueado).
"""

from __future__ import annotations

from typing import Optional


class WazapError(Exception):
    """Base de los errores propios del pipeline."""


class ParseError(WazapError):
    """Payload JSON malformado o con forma inesperada."""


class TransportError(WazapError):
    """Fallo a nivel de suscripción (conexión, HTTP, cierre del servidor)."""


class CapabilityDisabled(WazapError):
    """La capacidad de completado de texto no está configurada."""


class UpstreamFailure(WazapError):
    """Error de un colaborador externo (IA o API REST de agregados).

    ``reason`` clasifica el fallo para poder elegir el mensaje al usuario:
    ``api_key``, ``quota``, ``blocked``, ``network``, ``empty``, ``http``,
    ``circuit_open`` o ``unknown``.
    """

    def __init__(self, message: str, reason: str = "unknown", status_code: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code
