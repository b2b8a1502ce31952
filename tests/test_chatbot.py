"""Tests del asistente de chat."""

import pytest

from wazap_services.ai.chatbot import (
    BLOCKED_MESSAGE,
    DISABLED_MESSAGE,
    INVALID_KEY_MESSAGE,
    QUOTA_MESSAGE,
    ChatAssistant,
)
from wazap_services.ai.text_completion import ChatMessage
from wazap_services.common.errors import UpstreamFailure

from .conftest import FakeCompletion


class TestChatAssistant:

    @pytest.mark.asyncio
    async def test_disabled_returns_notice(self, aggregates):
        reply = await ChatAssistant(FakeCompletion(enabled=False), aggregates).ask("hi")
        assert reply == DISABLED_MESSAGE

    @pytest.mark.asyncio
    async def test_first_message_carries_context(self, aggregates):
        completion = FakeCompletion(reply="You generated 12.5 mWh today.")
        reply = await ChatAssistant(completion, aggregates).ask("How much today?")

        assert reply == "You generated 12.5 mWh today."
        conversation = completion.complete.await_args.args[0]
        assert len(conversation) == 1
        assert conversation[0].role == "user"
        assert "Total Energy Today: 12.5 mWh" in conversation[0].content
        assert "24h Energy Data Points: 24 readings" in conversation[0].content
        assert conversation[0].content.endswith("User question: How much today?")

    @pytest.mark.asyncio
    async def test_follow_up_sends_history_without_context(self, aggregates):
        completion = FakeCompletion(reply="ok")
        history = [
            ChatMessage(role="user", content="hi"),
            ChatMessage(role="assistant", content="hello"),
        ]
        await ChatAssistant(completion, aggregates).ask("and yesterday?", history)

        conversation = completion.complete.await_args.args[0]
        assert [m.role for m in conversation] == ["user", "assistant", "user"]
        assert conversation[-1].content == "and yesterday?"
        aggregates.total_energy_today.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reason,expected",
        [
            ("api_key", INVALID_KEY_MESSAGE),
            ("quota", QUOTA_MESSAGE),
            ("blocked", BLOCKED_MESSAGE),
        ],
    )
    async def test_failures_map_to_apologies(self, aggregates, reason, expected):
        completion = FakeCompletion()
        completion.complete.side_effect = UpstreamFailure("nope", reason=reason)

        assert await ChatAssistant(completion, aggregates).ask("hi") == expected

    @pytest.mark.asyncio
    async def test_unexpected_error_never_raises(self, aggregates):
        completion = FakeCompletion()
        completion.complete.side_effect = RuntimeError("socket closed")

        reply = await ChatAssistant(completion, aggregates).ask("hi")
        assert "socket closed" in reply

    @pytest.mark.asyncio
    async def test_context_tolerates_missing_stats(self, aggregates):
        aggregates.energy_generation_24h.side_effect = UpstreamFailure("down")
        completion = FakeCompletion(reply="fine")

        assert await ChatAssistant(completion, aggregates).ask("hi") == "fine"
        assert "0 readings" in completion.complete.await_args.args[0][0].content
