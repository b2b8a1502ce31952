"""Tests del generador de insights."""

import json

import pytest

from wazap_services.common.errors import UpstreamFailure
from wazap_services.ml_service.insight_summarizer import (
    STATIC_INSIGHTS,
    InsightSummarizer,
    sort_for_display,
)
from wazap_services.ml_service.models import Insight, InsightType

from .conftest import FakeCompletion


class TestInsightSummarizer:

    @pytest.mark.asyncio
    async def test_disabled_returns_static_list(self, aggregates):
        completion = FakeCompletion(enabled=False)
        insights = await InsightSummarizer(completion, aggregates).summarize()

        assert insights == list(STATIC_INSIGHTS)
        assert len(insights) > 0
        aggregates.daily_energy_7days.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_static_list_ignores_stats(self, aggregates):
        aggregates.total_energy_today.return_value = 99999.0
        insights = await InsightSummarizer(FakeCompletion(enabled=False), aggregates).summarize()
        assert insights == list(STATIC_INSIGHTS)

    @pytest.mark.asyncio
    async def test_parses_ai_reply(self, aggregates):
        reply = json.dumps([
            {"title": "Low Tuesday", "description": "Check the mat.", "type": "warning", "priority": 9},
            {"title": "Good week", "description": "Up 10%.", "type": "positive", "priority": 4},
        ])
        completion = FakeCompletion(reply=f"Sure! {reply}")
        insights = await InsightSummarizer(completion, aggregates).summarize()

        assert insights[0] == Insight("Low Tuesday", "Check the mat.", InsightType.WARNING, 9)
        assert insights[1].type == InsightType.POSITIVE

        prompt = completion.complete.await_args.args[0]
        assert "Today's Total: 12.5 mWh" in prompt
        assert "Average Voltage: 3.4 V" in prompt

    @pytest.mark.asyncio
    async def test_stat_failures_use_defaults(self, aggregates):
        aggregates.average_voltage.side_effect = UpstreamFailure("down")
        completion = FakeCompletion(reply='[{"title": "x", "type": "neutral", "priority": 1}]')

        insights = await InsightSummarizer(completion, aggregates).summarize()

        assert insights[0].title == "x"
        assert "Average Voltage: 0.0 V" in completion.complete.await_args.args[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        [
            "nothing useful",
            "[]",
            '[{"title": "bad type", "type": "excellent", "priority": 1}]',
            '[{"description": "no title"}]',
        ],
    )
    async def test_invalid_reply_falls_back(self, aggregates, reply):
        insights = await InsightSummarizer(FakeCompletion(reply=reply), aggregates).summarize()
        assert insights == list(STATIC_INSIGHTS)

    @pytest.mark.asyncio
    async def test_upstream_failure_falls_back(self, aggregates):
        completion = FakeCompletion()
        completion.complete.side_effect = UpstreamFailure("blocked", reason="blocked")

        insights = await InsightSummarizer(completion, aggregates).summarize()
        assert insights == list(STATIC_INSIGHTS)


def test_sort_for_display_descending_priority():
    ordered = sort_for_display(reversed(STATIC_INSIGHTS))
    assert [i.priority for i in ordered] == [8, 5, 3]
