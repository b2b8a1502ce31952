"""Servicios del pipeline de telemetría en tiempo real de WaZap."""
