from __future__ import annotations

from enum import Enum
from typing import Protocol
import logging

from fuzzcatch.capture.report import Report
from fuzzcatch.reporting.models import PublishResult

logger = logging.getLogger(__name__)


class ReportChannel(str, Enum):
    PULL_REQUEST = "pull-request"
    WEBHOOK = "webhook"
    SECURITY_ADVISORY = "security-advisory"


class Publisher(Protocol):
    def publish(self, report: Report) -> PublishResult: ...


class ReportDispatcher:
    """Selects the publisher for the configured channel."""

    def __init__(self, channel: ReportChannel, publishers: dict[ReportChannel, Publisher]):
        if channel not in publishers:
            raise ValueError(f"no publisher configured for report channel {channel.value}")
        self.channel = channel
        self.publishers = publishers

    def dispatch(self, report: Report) -> PublishResult:
        logger.info("Reporting %s via %s", report.title, self.channel.value)
        return self.publishers[self.channel].publish(report)
