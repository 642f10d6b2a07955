from unittest.mock import patch

import httpx
import pytest

from fuzzcatch.reporting.advisory import AdvisoryPublisher
from fuzzcatch.reporting.graphql import RemoteErrorKind, RemoteMutationError

REPORTS_URL = "https://api.test/repos/octo/example/security-advisories/reports"


@pytest.fixture
def publisher(run_context):
    return AdvisoryPublisher(run_context)


@patch("httpx.Client.post")
def test_publish(mock_post, publisher, report):
    mock_post.return_value = httpx.Response(201, json={"ghsa_id": "GHSA-xxxx-xxxx-xxxx"})

    result = publisher.publish(report)

    assert result.found
    assert mock_post.call_args.args[0] == REPORTS_URL
    payload = mock_post.call_args.kwargs["json"]
    assert payload["summary"] == "FuzzReverse in the package example/fuzz failed"
    assert payload["description"].startswith("`go test -run=FuzzReverse/abcdef ./example/fuzz` failed")
    assert "This report is generated by fuzzcatch." in payload["description"]


def test_headers(publisher):
    assert publisher._client.headers["Authorization"] == "Bearer test-token"
    assert publisher._client.headers["Accept"] == "application/vnd.github+json"


@pytest.mark.parametrize("status", [401, 403])
@patch("httpx.Client.post")
def test_publish_permission_error(mock_post, status, publisher, report):
    mock_post.return_value = httpx.Response(status, json={"message": "Private vulnerability reporting is disabled"})

    with pytest.raises(RemoteMutationError, match="failed to report a security vulnerability") as exc_info:
        publisher.publish(report)

    assert exc_info.value.kind == RemoteErrorKind.PERMISSION


@patch("httpx.Client.post")
def test_publish_validation_error(mock_post, publisher, report):
    mock_post.return_value = httpx.Response(422, json={"message": "Validation Failed"})

    with pytest.raises(RemoteMutationError) as exc_info:
        publisher.publish(report)

    assert exc_info.value.kind == RemoteErrorKind.OTHER


@patch("httpx.Client.post")
def test_publish_transport_error(mock_post, publisher, report):
    mock_post.side_effect = httpx.ReadTimeout("timed out")

    with pytest.raises(RemoteMutationError, match="failed to report a security vulnerability"):
        publisher.publish(report)
