from __future__ import annotations

from typing import Any
import json
import logging

import httpx

from fuzzcatch.capture.report import ATTRIBUTION, Report
from fuzzcatch.common.types import RunContext
from fuzzcatch.reporting.graphql import USER_AGENT, RemoteErrorKind, RemoteMutationError
from fuzzcatch.reporting.models import PublishResult

logger = logging.getLogger(__name__)

# Slack rejects section blocks with more than 3000 characters of text
MAX_BLOCK_TEXT = 3000
TRUNCATED_MARKER = "\n... (truncated)"


def _code_block(header: str, content: str) -> str:
    budget = MAX_BLOCK_TEXT - len(header) - len("```\n\n```")
    content = content.rstrip("\n")
    if len(content) > budget:
        content = content[: budget - len(TRUNCATED_MARKER)] + TRUNCATED_MARKER
    return f"{header}```\n{content}\n```"


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def build_message(report: Report, log_url: str | None = None) -> dict[str, Any]:
    footer = f"This report is generated by {ATTRIBUTION}."
    if log_url:
        footer += f" <{log_url}|See the log>."

    reproduction = report.reproduction
    blocks = [
        _section(f"*{report.title}*"),
        _section(_code_block(f"`{reproduction.command}` failed with the following output:\n", reproduction.output)),
    ]
    if report.artifact.patch:
        blocks.append(_section(_code_block(f"New fuzz input `{report.artifact.path}`:\n", report.artifact.patch)))
    blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": footer}]})

    return {"text": report.title, "blocks": blocks}


class WebhookPublisher:
    """Posts a report to a chat webhook (Slack incoming webhook format)."""

    def __init__(self, webhook_url: str, ctx: RunContext, timeout: float = 30.0):
        self.webhook_url = webhook_url
        self.ctx = ctx
        self._client = httpx.Client(timeout=timeout, headers={"User-Agent": USER_AGENT})

    def publish(self, report: Report) -> PublishResult:
        message = build_message(report, self.ctx.log_url())
        logger.debug("webhook request: %s", json.dumps(message))
        try:
            response = self._client.post(self.webhook_url, json=message)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Webhook returned HTTP %d: %s", e.response.status_code, e.response.text)
            raise RemoteMutationError("failed to post a notification", RemoteErrorKind.OTHER) from e
        except httpx.HTTPError as e:
            logger.error("Error posting to webhook: %s", e)
            raise RemoteMutationError("failed to post a notification", RemoteErrorKind.OTHER) from e

        logger.info("Posted notification for %s", report.title)
        return PublishResult(found=True)

    def close(self) -> None:
        self._client.close()
