"""Polling, storage and alerting for temperature and humidity sensors."""

__version__ = "0.1.0"
__all__ = ["apiclient", "database", "warning", "monitor"]