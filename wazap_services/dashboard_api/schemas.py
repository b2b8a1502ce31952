from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class SampleOut(BaseModel):
    timestamp: datetime
    voltage: float
    current: float
    power: float
    force: float


class StreamStatusOut(BaseModel):
    state: Literal["idle", "connecting", "active", "closing"]
    streaming: bool
    current_reading: Optional[SampleOut] = None
    samples: List[SampleOut] = Field(default_factory=list)
    stats: dict = Field(default_factory=dict)


class AlertOut(BaseModel):
    id: str
    timestamp: datetime
    severity: Literal["low", "medium", "high"]
    message: str
    metric: str
    value: float
    expected: float


class ForecastPointOut(BaseModel):
    timestamp: datetime
    predictedEnergy: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)


class InsightOut(BaseModel):
    title: str
    description: str
    type: Literal["positive", "neutral", "warning"]
    priority: int


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatIn(BaseModel):
    message: str = Field(..., min_length=1)
    history: List[ChatMessageIn] = Field(default_factory=list)


class ChatOut(BaseModel):
    reply: str
