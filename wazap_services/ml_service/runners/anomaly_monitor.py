"""Runner periódico del detector de anomalías.

Hace una pasada al arrancar y repite cada ``check_interval_seconds``
(5 minutos por defecto) sobre la ventana que entregue ``window_source``.
El temporizador pertenece a quien crea el monitor y debe cancelarse con
``stop()`` al desmontarlo; la sesión de streaming no depende de él.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from ..anomaly_detector import AnomalyDetector
from ..config.ml_config import DEFAULT_ML_CONFIG
from ..models import AnomalyAlert

logger = logging.getLogger(__name__)

WindowSource = Callable[[], Union[Sequence[Any], Awaitable[Sequence[Any]]]]


class AnomalyMonitor:
    def __init__(
        self,
        window_source: WindowSource,
        detector: Optional[AnomalyDetector] = None,
        *,
        check_interval_seconds: Optional[float] = None,
    ) -> None:
        self._source = window_source
        self._detector = detector or AnomalyDetector()
        self._interval = (
            check_interval_seconds
            if check_interval_seconds is not None
            else DEFAULT_ML_CONFIG.monitor.check_interval_seconds
        )
        self._alerts: List[AnomalyAlert] = []
        self._task: Optional[asyncio.Task] = None
        self.checks = 0

    @property
    def alerts(self) -> List[AnomalyAlert]:
        return list(self._alerts)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check(self) -> List[AnomalyAlert]:
        """Una pasada: reemplaza la lista de alertas.

        Si falla la lectura de la ventana se conserva la lista anterior.
        """

        try:
            window = self._source()
            if inspect.isawaitable(window):
                window = await window
            alerts = self._detector.detect(list(window))
        except Exception:
            logger.exception("[ANOMALY] Fallo comprobando anomalías")
            return self.alerts

        self._alerts = alerts
        self.checks += 1
        return self.alerts

    def dismiss(self, alert_id: str) -> bool:
        """Oculta una alerta; no afecta a las siguientes pasadas."""

        before = len(self._alerts)
        self._alerts = [a for a in self._alerts if a.id != alert_id]
        return len(self._alerts) != before

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="anomaly-monitor")
        logger.info("[ANOMALY] Monitor iniciado (intervalo=%.0fs)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("[ANOMALY] Monitor detenido")

    async def _run(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self._interval)
