"""Espresso Gallery - creator galleries, premium content and subscriptions."""

__version__ = "0.1.0"
