from unittest.mock import Mock

import pytest

from fuzzcatch.reporting.dispatcher import ReportChannel, ReportDispatcher
from fuzzcatch.reporting.models import PublishResult


def test_dispatch_uses_configured_channel(report):
    pull_request = Mock()
    webhook = Mock()
    webhook.publish.return_value = PublishResult(found=True)

    dispatcher = ReportDispatcher(
        ReportChannel.WEBHOOK, {ReportChannel.PULL_REQUEST: pull_request, ReportChannel.WEBHOOK: webhook}
    )

    assert dispatcher.dispatch(report) == PublishResult(found=True)
    webhook.publish.assert_called_once_with(report)
    pull_request.publish.assert_not_called()


def test_missing_publisher():
    with pytest.raises(ValueError, match="security-advisory"):
        ReportDispatcher(ReportChannel.SECURITY_ADVISORY, {ReportChannel.PULL_REQUEST: Mock()})


def test_channel_values():
    assert ReportChannel("pull-request") == ReportChannel.PULL_REQUEST
    assert ReportChannel("webhook") == ReportChannel.WEBHOOK
    assert ReportChannel("security-advisory") == ReportChannel.SECURITY_ADVISORY


def test_publish_result_outputs():
    assert PublishResult(found=False).outputs() == {"found": "false"}
    assert PublishResult(
        found=True, head_branch="fuzzcatch/a/FuzzX/1", pull_request_number=3, pull_request_url="https://x/pull/3"
    ).outputs() == {
        "found": "true",
        "head-branch": "fuzzcatch/a/FuzzX/1",
        "pull-request-number": "3",
        "pull-request-url": "https://x/pull/3",
    }
