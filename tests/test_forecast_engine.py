"""Tests del motor de previsión (IA + heurística de respaldo)."""

import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from wazap_services.common.errors import UpstreamFailure
from wazap_services.ml_service.forecast_engine import ForecastEngine

from .conftest import FakeCompletion

SEVEN_AM = datetime(2025, 3, 14, 7, 0, tzinfo=timezone.utc)


def engine(completion, aggregates, now=SEVEN_AM):
    return ForecastEngine(completion, aggregates, rng=random.Random(7), clock=lambda: now)


def assert_hourly(points, start):
    for i, p in enumerate(points):
        assert p.timestamp == start + timedelta(hours=i)


class TestFallback:

    @pytest.mark.asyncio
    async def test_disabled_uses_heuristic(self, aggregates):
        completion = FakeCompletion(enabled=False)
        points = await engine(completion, aggregates).forecast(3)

        assert len(points) == 3
        assert_hourly(points, SEVEN_AM)
        assert all(0.3 <= p.predicted_energy <= 1.0 for p in points)
        assert all(p.confidence == 0.7 for p in points)
        completion.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_busy_hours_get_higher_base(self, aggregates):
        points = await engine(FakeCompletion(enabled=False), aggregates).forecast(3)

        # 7h es franja tranquila, 8h y 9h laborables
        assert 0.3 <= points[0].predicted_energy <= 0.5
        assert 0.8 <= points[1].predicted_energy <= 1.0
        assert 0.8 <= points[2].predicted_energy <= 1.0

    @pytest.mark.asyncio
    async def test_wraps_past_midnight(self, aggregates):
        late = datetime(2025, 3, 14, 23, 0, tzinfo=timezone.utc)
        points = await engine(FakeCompletion(enabled=False), aggregates, now=late).forecast(2)

        assert points[1].timestamp.hour == 0
        assert points[1].predicted_energy < 0.8

    @pytest.mark.asyncio
    async def test_zero_horizon(self, aggregates):
        assert await engine(FakeCompletion(enabled=False), aggregates).forecast(0) == []


class TestAiPath:

    @pytest.mark.asyncio
    async def test_parses_first_json_array(self, aggregates):
        reply = (
            "Here you go:\n```json\n"
            '[{"hour": 0, "energy": 0.5, "confidence": 0.85},'
            ' {"hour": 1, "energy": 0.9, "confidence": 0.8},'
            ' {"hour": 2, "energy": 1.1, "confidence": 0.75},'
            ' {"hour": 3, "energy": 1.2, "confidence": 0.7}]\n```'
        )
        completion = FakeCompletion(reply=reply)
        points = await engine(completion, aggregates).forecast(3)

        assert [p.predicted_energy for p in points] == [0.5, 0.9, 1.1]
        assert [p.confidence for p in points] == [0.85, 0.8, 0.75]
        assert_hourly(points, SEVEN_AM)

        prompt = completion.complete.await_args.args[0]
        assert "2025-03-07: 17.0 mWh" in prompt
        assert "next 3 hours" in prompt

    @pytest.mark.asyncio
    async def test_missing_fields_use_defaults(self, aggregates):
        points = await engine(FakeCompletion(reply='[{"hour": 0}]'), aggregates).forecast(1)

        assert points[0].predicted_energy == 0.0
        assert points[0].confidence == 0.5

    @pytest.mark.asyncio
    async def test_short_answer_is_padded(self, aggregates):
        reply = '[{"hour": 0, "energy": 0.4, "confidence": 0.9}]'
        points = await engine(FakeCompletion(reply=reply), aggregates).forecast(4)

        assert len(points) == 4
        assert points[0].confidence == 0.9
        assert [p.confidence for p in points[1:]] == [0.7, 0.7, 0.7]
        assert_hourly(points, SEVEN_AM)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["no json here", "[not valid json]", '["a", "b"]'])
    async def test_unusable_reply_falls_back(self, aggregates, reply):
        points = await engine(FakeCompletion(reply=reply), aggregates).forecast(3)

        assert len(points) == 3
        assert all(p.confidence == 0.7 for p in points)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        [
            '[{"hour": 0, "energy": 1e999, "confidence": 0.8}]',
            '[{"hour": 0, "energy": 0.4, "confidence": NaN}]',
            '[{"hour": 0, "energy": "-Infinity", "confidence": 0.8}]',
        ],
    )
    async def test_non_finite_values_fall_back(self, aggregates, reply):
        points = await engine(FakeCompletion(reply=reply), aggregates).forecast(1)

        assert len(points) == 1
        assert points[0].confidence == 0.7
        assert math.isfinite(points[0].predicted_energy)

    @pytest.mark.asyncio
    async def test_upstream_failure_falls_back(self, aggregates):
        completion = FakeCompletion()
        completion.complete.side_effect = UpstreamFailure("quota", reason="quota")

        points = await engine(completion, aggregates).forecast(2)
        assert [p.confidence for p in points] == [0.7, 0.7]

    @pytest.mark.asyncio
    async def test_history_failure_falls_back(self, aggregates):
        aggregates.daily_energy_7days.side_effect = UpstreamFailure("down", reason="network")
        completion = FakeCompletion()

        points = await engine(completion, aggregates).forecast(2)

        assert len(points) == 2
        completion.complete.assert_not_awaited()
