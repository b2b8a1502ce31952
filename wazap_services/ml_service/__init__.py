from .anomaly_detector import AnomalyDetector, detect_anomalies
from .forecast_engine import ForecastEngine
from .insight_summarizer import InsightSummarizer, sort_for_display
from .models import AnomalyAlert, ForecastPoint, Insight, InsightType, Severity

__all__ = [
    "AnomalyDetector",
    "detect_anomalies",
    "ForecastEngine",
    "InsightSummarizer",
    "sort_for_display",
    "AnomalyAlert",
    "ForecastPoint",
    "Insight",
    "InsightType",
    "Severity",
]
