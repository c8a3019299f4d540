"""Outbound notifications. Email delivery is mocked by writing to the log."""

import logging
from typing import Protocol


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, to: str, subject: str, message: str) -> None:
        ...


class LoggingNotifier:
    """Records each would-be email on the ``backend.services.notifications`` logger."""

    def send(self, to: str, subject: str, message: str) -> None:
        logger.info('[EMAIL TO: %s] Subject: %s | Message: %s', to, subject, message)
