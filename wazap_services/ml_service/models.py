from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    """Severidad ordenada: low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2}


class InsightType(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    WARNING = "warning"


@dataclass(frozen=True)
class AnomalyAlert:
    """Alerta efímera: se genera en cada pasada, sin deduplicar."""

    id: str
    timestamp: datetime
    severity: Severity
    message: str
    metric: str
    value: float
    expected: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "message": self.message,
            "metric": self.metric,
            "value": self.value,
            "expected": self.expected,
        }


@dataclass(frozen=True)
class ForecastPoint:
    timestamp: datetime
    predicted_energy: float
    confidence: float

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "predictedEnergy": self.predicted_energy,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class Insight:
    title: str
    description: str
    type: InsightType
    priority: int

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "priority": self.priority,
        }
