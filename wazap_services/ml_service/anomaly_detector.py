"""Detector de anomalías contra la media de una ventana reciente.

Reglas (sobre el último punto de la ventana):
1. Voltaje < 0.5 x media -> high. Si no, voltaje < 0.7 x media -> medium.
   Como mucho una alerta de voltaje por pasada.
2. Energía < 0.3 x media con media > 0.1 -> medium.
3. Voltaje == 0 y energía == 0 -> high (se suma a las anteriores).

No hay supresión entre pasadas: si la condición persiste, se reporta en
cada ciclo.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from statistics import fmean
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .config.ml_config import DEFAULT_ML_CONFIG, AnomalyThresholds
from .models import AnomalyAlert, Severity

logger = logging.getLogger(__name__)


class AnomalyDetector:
    """Función pura de la ventana candidata (salvo id y timestamp)."""

    def __init__(
        self,
        thresholds: Optional[AnomalyThresholds] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._cfg = thresholds or DEFAULT_ML_CONFIG.anomaly
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def detect(self, recent: Sequence[Any]) -> List[AnomalyAlert]:
        """Evalúa la ventana. Acepta Samples, EnergyPoints o dicts."""

        alerts: List[AnomalyAlert] = []
        if not recent:
            return alerts

        cfg = self._cfg
        voltages = [_metric(item, "voltage") for item in recent]
        energies = [_metric(item, "energy") for item in recent]

        avg_voltage = fmean(voltages)
        avg_energy = fmean(energies)

        latest_voltage = voltages[-1]
        latest_energy = energies[-1]

        if latest_voltage < avg_voltage * cfg.voltage_high_ratio:
            alerts.append(
                self._alert(
                    "voltage",
                    Severity.HIGH,
                    "Voltage dropped significantly below average. Check sensor connections.",
                    "voltage",
                    latest_voltage,
                    avg_voltage,
                )
            )
        elif latest_voltage < avg_voltage * cfg.voltage_medium_ratio:
            alerts.append(
                self._alert(
                    "voltage-low",
                    Severity.MEDIUM,
                    "Voltage is lower than typical. Monitor system performance.",
                    "voltage",
                    latest_voltage,
                    avg_voltage,
                )
            )

        if latest_energy < avg_energy * cfg.energy_low_ratio and avg_energy > cfg.energy_min_average:
            alerts.append(
                self._alert(
                    "energy",
                    Severity.MEDIUM,
                    "Energy generation significantly lower than expected.",
                    "energy",
                    latest_energy,
                    avg_energy,
                )
            )

        if latest_voltage == 0 and latest_energy == 0:
            alerts.append(
                self._alert(
                    "zero",
                    Severity.HIGH,
                    "No energy generation detected. System may be offline.",
                    "system",
                    0.0,
                    avg_energy,
                )
            )

        if alerts:
            logger.info(
                "[ANOMALY] %d alertas (avg_voltage=%.3f latest_voltage=%.3f avg_energy=%.3f latest_energy=%.3f)",
                len(alerts),
                avg_voltage,
                latest_voltage,
                avg_energy,
                latest_energy,
            )
        return alerts

    def _alert(
        self,
        kind: str,
        severity: Severity,
        message: str,
        metric: str,
        value: float,
        expected: float,
    ) -> AnomalyAlert:
        return AnomalyAlert(
            id=f"anomaly-{uuid.uuid4().hex[:12]}-{kind}",
            timestamp=self._clock(),
            severity=severity,
            message=message,
            metric=metric,
            value=float(value),
            expected=float(expected),
        )


def detect_anomalies(recent: Sequence[Any]) -> List[AnomalyAlert]:
    """Atajo con umbrales por defecto."""
    return AnomalyDetector().detect(recent)


def _metric(item: Any, name: str) -> float:
    if isinstance(item, Mapping):
        value = item.get(name)
    else:
        value = getattr(item, name, None)
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
