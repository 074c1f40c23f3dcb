"""
User-facing notification sink.

The core reports failures through alert() and asks before discarding
unsaved edits through confirm(). UIs supply their own implementation;
LoggingNotifier is used when nothing is attached (HTTP, scripts, tests).
"""

import logging
from abc import ABC, abstractmethod
from typing import List

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Blocking notification and confirmation interface."""

    @abstractmethod
    def alert(self, message: str) -> None:
        """Show a blocking message naming the failed operation."""

    @abstractmethod
    def confirm(self, message: str) -> bool:
        """Ask a yes/no question. True means proceed."""


class LoggingNotifier(Notifier):
    """
    Notifier without a UI.

    Alerts are logged as warnings and kept in `alerts`; confirmations
    return a fixed answer.

    Args:
        confirm_default: Answer returned by confirm()
    """

    def __init__(self, confirm_default: bool = False):
        self.confirm_default = confirm_default
        self.alerts: List[str] = []

    def alert(self, message: str) -> None:
        self.alerts.append(message)
        logger.warning(message)

    def confirm(self, message: str) -> bool:
        logger.info(f"Confirm requested ({'yes' if self.confirm_default else 'no'}): {message}")
        return self.confirm_default
