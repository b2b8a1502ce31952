from .aggregates_client import AggregateApiClient, AggregateSource, DailyEnergy, EnergyPoint

__all__ = ["AggregateApiClient", "AggregateSource", "DailyEnergy", "EnergyPoint"]
