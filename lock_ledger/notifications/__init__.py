"""Notification channels for ledger activity."""
from .telegram import TelegramNotifier

__all__ = ["TelegramNotifier"]
