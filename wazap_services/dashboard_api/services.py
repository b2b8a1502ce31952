"""Construcción de los colaboradores de proceso del dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..ai.chatbot import ChatAssistant
from ..ai.text_completion import GeminiCompletionClient, TextCompletion
from ..api.aggregates_client import AggregateApiClient, AggregateSource
from ..common.config import Settings, get_settings
from ..common.db import get_engine
from ..ml_service.forecast_engine import ForecastEngine
from ..ml_service.insight_summarizer import InsightSummarizer
from ..ml_service.runners.anomaly_monitor import AnomalyMonitor
from ..stream.intent_store import IntentStore, SqlIntentStore
from ..stream.session_manager import StreamingSessionManager
from ..stream.sse_feed import SseTelemetryFeed, TelemetryFeed


@dataclass
class Services:
    session: StreamingSessionManager
    monitor: AnomalyMonitor
    forecast: ForecastEngine
    insights: InsightSummarizer
    chat: ChatAssistant
    intent_store: IntentStore


def wire_services(
    *,
    feed: TelemetryFeed,
    intent_store: IntentStore,
    completion: TextCompletion,
    aggregates: AggregateSource,
    capacity: int = 20,
    check_interval_seconds: Optional[float] = None,
) -> Services:
    session = StreamingSessionManager(feed, intent_store, capacity=capacity)
    # El detector lee el buffer en vivo a su propio ritmo.
    monitor = AnomalyMonitor(
        lambda: session.buffer.samples,
        check_interval_seconds=check_interval_seconds,
    )
    return Services(
        session=session,
        monitor=monitor,
        forecast=ForecastEngine(completion, aggregates),
        insights=InsightSummarizer(completion, aggregates),
        chat=ChatAssistant(completion, aggregates),
        intent_store=intent_store,
    )


def build_services(settings: Optional[Settings] = None) -> Services:
    settings = settings or get_settings()
    return wire_services(
        feed=SseTelemetryFeed(settings.stream_url, connect_timeout=settings.http_timeout_seconds),
        intent_store=SqlIntentStore(get_engine(settings)),
        completion=GeminiCompletionClient.from_settings(settings),
        aggregates=AggregateApiClient.from_settings(settings),
        capacity=settings.stream_buffer_capacity,
        check_interval_seconds=settings.anomaly_check_interval_seconds,
    )
