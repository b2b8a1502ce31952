"""Tests del runner periódico de anomalías."""

import asyncio

import pytest

from wazap_services.ml_service.runners.anomaly_monitor import AnomalyMonitor

LOW_VOLTAGE_WINDOW = [{"voltage": 4.0, "energy": 1.0}] * 3 + [{"voltage": 1.0, "energy": 1.0}]
NORMAL_WINDOW = [{"voltage": 4.0, "energy": 1.0}] * 4


class TestAnomalyMonitor:

    @pytest.mark.asyncio
    async def test_check_replaces_alerts(self):
        windows = [LOW_VOLTAGE_WINDOW, NORMAL_WINDOW]
        monitor = AnomalyMonitor(lambda: windows.pop(0))

        assert len(await monitor.check()) == 1
        assert await monitor.check() == []
        assert monitor.checks == 2

    @pytest.mark.asyncio
    async def test_async_source(self):
        async def source():
            return LOW_VOLTAGE_WINDOW

        monitor = AnomalyMonitor(source)
        alerts = await monitor.check()
        assert alerts[0].metric == "voltage"

    @pytest.mark.asyncio
    async def test_repeated_condition_is_reported_every_pass(self):
        monitor = AnomalyMonitor(lambda: LOW_VOLTAGE_WINDOW)
        first = await monitor.check()
        second = await monitor.check()

        assert len(first) == len(second) == 1
        assert first[0].id != second[0].id

    @pytest.mark.asyncio
    async def test_dismiss_does_not_affect_next_pass(self):
        monitor = AnomalyMonitor(lambda: LOW_VOLTAGE_WINDOW)
        alert = (await monitor.check())[0]

        assert monitor.dismiss(alert.id) is True
        assert monitor.alerts == []
        assert monitor.dismiss(alert.id) is False

        assert len(await monitor.check()) == 1

    @pytest.mark.asyncio
    async def test_source_failure_keeps_previous_alerts(self):
        calls = {"n": 0}

        def source():
            calls["n"] += 1
            if calls["n"] > 1:
                raise RuntimeError("api down")
            return LOW_VOLTAGE_WINDOW

        monitor = AnomalyMonitor(source)
        first = await monitor.check()
        second = await monitor.check()

        assert second == first

    @pytest.mark.asyncio
    async def test_timer_runs_and_stops(self):
        monitor = AnomalyMonitor(lambda: NORMAL_WINDOW, check_interval_seconds=0.01)
        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()

        checks = monitor.checks
        assert checks >= 2
        assert monitor.is_running is False

        await asyncio.sleep(0.03)
        assert monitor.checks == checks
