from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AnomalyThresholds:
    """Umbrales del detector contra la media de la ventana.

    Estos valores son heurísticos y auditables a propósito.
    """

    # Voltaje: la primera regla que se cumpla gana (high antes que medium)
    voltage_high_ratio: float = 0.5
    voltage_medium_ratio: float = 0.7

    # Energía: ratio sobre la media y media mínima para considerarla
    energy_low_ratio: float = 0.3
    energy_min_average: float = 0.1


@dataclass(frozen=True)
class ForecastConfig:
    """Heurística de respaldo de la previsión horaria."""

    # Horas "laborables" con más tráfico de pisadas (inclusive)
    busy_start_hour: int = 8
    busy_end_hour: int = 18

    busy_base_energy: float = 0.8
    quiet_base_energy: float = 0.3
    max_random_variation: float = 0.2

    fallback_confidence: float = 0.7

    # Valores por defecto para entradas incompletas del modelo
    default_ai_confidence: float = 0.5
    default_horizon_hours: int = 24


@dataclass(frozen=True)
class MonitorConfig:
    # Re-chequeo de anomalías cada 5 minutos
    check_interval_seconds: float = 300.0


@dataclass(frozen=True)
class GlobalMLConfig:
    anomaly: AnomalyThresholds = field(default_factory=AnomalyThresholds)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)


# Config global por defecto utilizable en runners/servicios
DEFAULT_ML_CONFIG = GlobalMLConfig()
