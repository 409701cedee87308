"""Shared helpers that are independent of the forecasting package."""
