"""Alertas, previsión, insights y chat."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ...ai.text_completion import ChatMessage
from ...ml_service.insight_summarizer import sort_for_display
from ..schemas import AlertOut, ChatIn, ChatOut, ForecastPointOut, InsightOut
from ..services import Services
from .deps import get_services

router = APIRouter(tags=["analytics"])


@router.get("/alerts", response_model=List[AlertOut])
def list_alerts(services: Services = Depends(get_services)):
    return [a.to_dict() for a in services.monitor.alerts]


@router.post("/alerts/check", response_model=List[AlertOut])
async def check_alerts(services: Services = Depends(get_services)):
    alerts = await services.monitor.check()
    return [a.to_dict() for a in alerts]


@router.delete("/alerts/{alert_id}", status_code=204)
def dismiss_alert(alert_id: str, services: Services = Depends(get_services)):
    if not services.monitor.dismiss(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")


@router.get("/forecast", response_model=List[ForecastPointOut])
async def get_forecast(
    hours: int = Query(24, ge=1, le=168),
    services: Services = Depends(get_services),
):
    points = await services.forecast.forecast(hours)
    return [p.to_dict() for p in points]


@router.get("/insights", response_model=List[InsightOut])
async def get_insights(services: Services = Depends(get_services)):
    insights = await services.insights.summarize()
    return [i.to_dict() for i in sort_for_display(insights)]


@router.post("/chat", response_model=ChatOut)
async def chat(body: ChatIn, services: Services = Depends(get_services)):
    history = [ChatMessage(role=m.role, content=m.content) for m in body.history]
    reply = await services.chat.ask(body.message, history)
    return {"reply": reply}
